from sqlalchemy import select

from travel_agency.core.config import settings
from travel_agency.crud.package import seat_layout_cache_key
from travel_agency.models import Affiliate, AffiliateReferral, AffiliateStatus, Package
from travel_agency.tests.conftest import booking_payload


async def test_create_booking_claims_seats(client, seeded_test_data):
    package_id = seeded_test_data["package_id"]
    response = await client.post("/api/bookings", json=booking_payload(package_id, selected_seats=[2, 1]))
    assert response.status_code == 201, response.text
    booking = response.json()
    assert booking["total_amount"] == 2 * 10000
    assert booking["selected_seats"] == [1, 2]
    assert booking["status"] == "pending"
    assert booking["payment_status"] == "pending"

    seats = (await client.get(f"/api/packages/{package_id}/seats")).json()
    assert seats["occupied_seats"] == [1, 2]
    assert seats["available_seats"] == 8
    assert seats["total_bookings"] == 1
    assert seats["total_participants"] == 2
    assert seats["bus"]["plate"] == "ABC1D23"


async def test_booking_taken_seat_is_rejected(client, seeded_test_data, redis_client):
    package_id = seeded_test_data["package_id"]
    first = await client.post("/api/bookings", json=booking_payload(package_id, selected_seats=[1, 2]))
    assert first.status_code == 201
    await client.get(f"/api/packages/{package_id}/seat-map")
    assert await redis_client.exists(seat_layout_cache_key(package_id))

    second = await client.post("/api/bookings", json=booking_payload(
        package_id, customer_email="outra@example.com", selected_seats=[2, 3]))
    assert second.status_code == 409
    assert second.json() == {"error": "Seats already taken: 2"}
    # the rejected claim gives its seat locks back and drops the cached layout
    assert await redis_client.keys("lock:*") == []
    assert not await redis_client.exists(seat_layout_cache_key(package_id))

    package = (await client.get(f"/api/packages/{package_id}")).json()
    assert package["available_seats"] == 8
    assert package["bookings_count"] == 1


async def test_seat_selection_is_validated(client, seeded_test_data):
    package_id = seeded_test_data["package_id"]
    cases = [
        ({"selected_seats": []}, "Select your seats before booking"),
        ({"selected_seats": [1, 1]}, "A seat can only be selected once"),
        ({"selected_seats": [1, 11]}, "Seats out of range 1..10: 11"),
        ({"selected_seats": [1, 2, 3]}, "Select exactly 2 seats, 3 selected"),
    ]
    for overrides, message in cases:
        response = await client.post("/api/bookings", json=booking_payload(package_id, **overrides))
        assert response.status_code == 400
        assert response.json()["error"] == message


async def test_blank_required_fields_are_rejected(client, seeded_test_data):
    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], customer_name="  ", customer_phone=""))
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields: customer_name, customer_phone"

    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], customer_email="not-an-email"))
    assert response.status_code == 422


async def test_booking_unknown_or_unpublished_package(client, seeded_test_data):
    response = await client.post("/api/bookings", json=booking_payload(9999))
    assert response.status_code == 404
    assert response.json() == {"error": "Package not found"}

    response = await client.post("/api/bookings", json=booking_payload(seeded_test_data["draft_package_id"]))
    assert response.status_code == 400


async def test_child_prices_and_lap_children(client, seeded_test_data):
    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"],
        num_passengers=5,
        passenger_details={"adults": 2, "children_11_13": 1, "children_6_10": 1, "children_free": 1},
        selected_seats=[5, 6, 7, 8]))
    assert response.status_code == 201, response.text
    assert response.json()["total_amount"] == 2 * 10000 + 8000 + 5000

    package = (await client.get(f"/api/packages/{seeded_test_data['package_id']}")).json()
    assert package["available_seats"] == 6


async def test_passenger_details_must_match_count(client, seeded_test_data):
    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], num_passengers=3,
        passenger_details={"adults": 1, "children_6_10": 1}))
    assert response.status_code == 400


async def test_package_without_seat_map(client, seeded_test_data):
    package_id = seeded_test_data["open_package_id"]
    response = await client.post("/api/bookings", json=booking_payload(
        package_id, num_passengers=3, selected_seats=None))
    assert response.status_code == 201
    assert response.json()["total_amount"] == 3 * 2500
    assert response.json()["selected_seats"] is None

    response = await client.post("/api/bookings", json=booking_payload(
        package_id, num_passengers=3, selected_seats=None))
    assert response.status_code == 400
    assert response.json() == {"error": "Only 2 seats available"}


async def test_affiliate_referral_from_cookie(client, seeded_test_data, db_session_factory):
    async with db_session_factory() as session:
        session.add(Affiliate(name="Carla Souza", email="carla@example.com", code="CARLA1A2B",
                              commission_rate=7.0, status=AffiliateStatus.ACTIVE))
        await session.commit()

    # landing with ?ref= stores the cookie
    landing = await client.get("/api/packages?ref=carla1a2b")
    assert landing.cookies.get("amorim_ref") == "CARLA1A2B"

    response = await client.post("/api/bookings", json=booking_payload(seeded_test_data["package_id"]))
    assert response.status_code == 201
    assert response.json()["affiliate_code"] == "CARLA1A2B"
    assert 'amorim_ref=""' in response.headers["set-cookie"] or "Max-Age=0" in response.headers["set-cookie"]

    async with db_session_factory() as session:
        referral = (await session.execute(select(AffiliateReferral))).scalar_one()
        assert referral.sale_amount == 20000
        assert referral.commission_amount == 1400
        assert referral.package_title == "Gramado Natal Luz"


async def test_inactive_affiliate_code_is_ignored(client, seeded_test_data, db_session_factory):
    async with db_session_factory() as session:
        session.add(Affiliate(name="Pedro", email="pedro@example.com", code="PEDROX1Y2",
                              status=AffiliateStatus.PENDING))
        await session.commit()

    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], affiliate_code="PEDROX1Y2"))
    assert response.status_code == 201
    assert response.json()["affiliate_code"] is None


async def test_list_bookings_requires_admin(client, seeded_test_data, customer_headers, admin_headers):
    assert (await client.get("/api/bookings")).status_code == 401
    assert (await client.get("/api/bookings", headers=customer_headers)).status_code == 403

    await client.post("/api/bookings", json=booking_payload(seeded_test_data["package_id"]))
    response = await client.get("/api/bookings", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 1
    assert body["stats"] == {"total": 1, "pending": 1, "confirmed": 0, "paid": 0, "canceled": 0, "revenue": 0}


async def test_owner_can_read_own_booking(client, seeded_test_data, customer_headers, super_admin_headers):
    created = await client.post("/api/bookings", json=booking_payload(seeded_test_data["package_id"]),
                                headers=customer_headers)
    booking_id = created.json()["id"]
    assert created.json()["user_id"] == seeded_test_data["customer_id"]

    assert (await client.get(f"/api/bookings/{booking_id}", headers=customer_headers)).status_code == 200
    assert (await client.get(f"/api/bookings/{booking_id}", headers=super_admin_headers)).status_code == 200

    guest = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], selected_seats=[7, 8]))
    response = await client.get(f"/api/bookings/{guest.json()['id']}", headers=customer_headers)
    assert response.status_code == 403


async def test_status_transitions(client, seeded_test_data, admin_headers):
    booking_id = (await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"]))).json()["id"]
    url = f"/api/bookings/{booking_id}"

    response = await client.put(url, json={"status": "paid"}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.put(url, json={"status": "confirmed", "notes": "confirmado por telefone"},
                                headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"
    assert response.json()["notes"] == "confirmado por telefone"

    # same status is a no-op
    assert (await client.put(url, json={"status": "confirmed"}, headers=admin_headers)).status_code == 200

    response = await client.put(url, json={"status": "paid"}, headers=admin_headers)
    assert response.json()["payment_status"] == "paid"
    assert response.json()["paid_at"] is not None

    stats = (await client.get("/api/bookings", headers=admin_headers)).json()["stats"]
    assert stats["paid"] == 1
    assert stats["revenue"] == 20000


async def test_cancel_frees_seats(client, seeded_test_data, admin_headers, db_session_factory):
    package_id = seeded_test_data["package_id"]
    booking_id = (await client.post("/api/bookings", json=booking_payload(package_id))).json()["id"]

    response = await client.put(f"/api/bookings/{booking_id}", json={"status": "canceled"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["canceled_at"] is not None

    seats = (await client.get(f"/api/packages/{package_id}/seats")).json()
    assert seats["occupied_seats"] == []
    async with db_session_factory() as session:
        package = await session.get(Package, package_id)
        assert package.available_seats == 10

    # canceled is final
    response = await client.put(f"/api/bookings/{booking_id}", json={"status": "pending"}, headers=admin_headers)
    assert response.status_code == 400

    # the freed seats can be booked again
    response = await client.post("/api/bookings", json=booking_payload(package_id))
    assert response.status_code == 201


async def test_payment_status_stamps_paid_at(client, seeded_test_data, admin_headers):
    booking_id = (await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"]))).json()["id"]
    response = await client.put(f"/api/bookings/{booking_id}", json={"payment_status": "paid"},
                                headers=admin_headers)
    assert response.json()["payment_status"] == "paid"
    assert response.json()["paid_at"] is not None
    assert response.json()["status"] == "pending"


async def test_booking_rate_limit(client, seeded_test_data, redis_client, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_PER_MINUTE", 1)

    await client.post("/api/bookings", json=booking_payload(seeded_test_data["package_id"]))
    response = await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], selected_seats=[5, 6]))
    assert response.status_code == 429
    assert "Retry-After" in response.headers
