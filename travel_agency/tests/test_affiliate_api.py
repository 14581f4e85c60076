import re

from travel_agency.core.security import create_access_token
from travel_agency.services.text import generate_affiliate_code
from travel_agency.tests.conftest import auth_header, booking_payload


async def sign_up(client, name="Carla Souza", email="carla@example.com"):
    response = await client.post("/api/affiliates", json={"name": name, "email": email, "phone": "11977776666"})
    assert response.status_code == 201, response.text
    return response.json()


async def activate(client, affiliate_id, headers):
    response = await client.patch(f"/api/affiliates/{affiliate_id}", json={"status": "active"}, headers=headers)
    assert response.status_code == 200
    return response.json()


def test_affiliate_code_format():
    assert re.fullmatch(r"JOSE[0-9A-Z]{4}", generate_affiliate_code("José da Silva"))
    assert re.fullmatch(r"MARIAN[0-9A-Z]{4}", generate_affiliate_code("Marianaaaa Costa"))
    assert re.fullmatch(r"[0-9A-Z]{4}", generate_affiliate_code("   "))


async def test_sign_up_creates_pending_affiliate(client, seeded_test_data):
    affiliate = await sign_up(client)
    assert affiliate["status"] == "pending"
    assert affiliate["commission_rate"] == 7.0
    assert re.fullmatch(r"CARLA[0-9A-Z]{4}", affiliate["code"])
    assert affiliate["total_sales"] == 0

    response = await client.post("/api/affiliates", json={"name": "Outra", "email": "CARLA@example.com"})
    assert response.status_code == 409


async def test_lookup_by_code_or_email(client, seeded_test_data):
    affiliate = await sign_up(client)
    found = (await client.get("/api/affiliates/lookup", params={"code": affiliate["code"].lower()})).json()
    assert found == {"id": affiliate["id"], "name": "Carla Souza", "code": affiliate["code"], "status": "pending"}
    assert (await client.get("/api/affiliates/lookup", params={"email": "carla@example.com"})).status_code == 200
    assert (await client.get("/api/affiliates/lookup", params={"code": "NOPE0000"})).status_code == 404
    assert (await client.get("/api/affiliates/lookup")).status_code == 400


async def test_admin_patch_validates_and_activates(client, seeded_test_data, admin_headers):
    affiliate = await sign_up(client)
    url = f"/api/affiliates/{affiliate['id']}"

    response = await client.patch(url, json={"commission_rate": 120}, headers=admin_headers)
    assert response.status_code == 400
    response = await client.patch(url, json={"status": "vip"}, headers=admin_headers)
    assert response.status_code == 422

    activated = await activate(client, affiliate["id"], admin_headers)
    assert activated["status"] == "active"
    assert activated["approved_at"] is not None

    response = await client.patch(url, json={"commission_rate": 9.5, "pix_key": "carla@pix"}, headers=admin_headers)
    assert response.json()["commission_rate"] == 9.5
    assert response.json()["pix_key"] == "carla@pix"


async def test_admin_list_includes_referral_totals(client, seeded_test_data, admin_headers):
    affiliate = await sign_up(client)
    await activate(client, affiliate["id"], admin_headers)
    await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], affiliate_code=affiliate["code"]))

    affiliates = (await client.get("/api/affiliates", headers=admin_headers)).json()
    assert len(affiliates) == 1
    assert affiliates[0]["referrals_count"] == 1
    assert affiliates[0]["referrals_sales"] == 20000
    assert affiliates[0]["referrals_commission"] == 1400
    assert (await client.get("/api/affiliates")).status_code == 401


async def test_paying_a_referral_updates_totals_once(client, seeded_test_data, admin_headers):
    affiliate = await sign_up(client)
    await activate(client, affiliate["id"], admin_headers)
    await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], affiliate_code=affiliate["code"]))

    referrals = (await client.get("/api/affiliates/referrals", params={"status": "PENDING"},
                                  headers=admin_headers)).json()
    assert len(referrals) == 1
    assert referrals[0]["affiliate"]["code"] == affiliate["code"]
    referral_id = referrals[0]["id"]

    response = await client.put("/api/affiliates/referrals", json={"referral_id": referral_id, "status": "approved"},
                                headers=admin_headers)
    assert response.json()["commission_status"] == "approved"
    for _ in range(2):
        response = await client.put("/api/affiliates/referrals", json={"referral_id": referral_id, "status": "PAID"},
                                    headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["commission_paid_at"] is not None

    updated = (await client.get(f"/api/affiliates/{affiliate['id']}", headers=admin_headers)).json()
    assert updated["total_sales"] == 20000
    assert updated["total_earned"] == 1400
    assert updated["total_bookings"] == 1

    response = await client.put("/api/affiliates/referrals", json={"referral_id": referral_id, "status": "lost"},
                                headers=admin_headers)
    assert response.status_code == 400
    response = await client.put("/api/affiliates/referrals", json={"referral_id": 999, "status": "paid"},
                                headers=admin_headers)
    assert response.status_code == 404


async def test_delete_refused_with_referrals(client, seeded_test_data, admin_headers):
    with_referral = await sign_up(client)
    await activate(client, with_referral["id"], admin_headers)
    await client.post("/api/bookings", json=booking_payload(
        seeded_test_data["package_id"], affiliate_code=with_referral["code"]))
    response = await client.delete(f"/api/affiliates/{with_referral['id']}", headers=admin_headers)
    assert response.status_code == 400

    without_referral = await sign_up(client, name="Bruno", email="bruno@example.com")
    response = await client.delete(f"/api/affiliates/{without_referral['id']}", headers=admin_headers)
    assert response.status_code == 200
    assert (await client.get(f"/api/affiliates/{without_referral['id']}", headers=admin_headers)).status_code == 404


async def test_stats(client, seeded_test_data, admin_headers):
    affiliate = await sign_up(client)
    await activate(client, affiliate["id"], admin_headers)
    package_id = seeded_test_data["package_id"]
    await client.post("/api/bookings", json=booking_payload(package_id, affiliate_code=affiliate["code"]))
    await client.post("/api/bookings", json=booking_payload(
        package_id, affiliate_code=affiliate["code"], num_passengers=1, selected_seats=[5]))

    response = await client.get("/api/affiliates/stats", params={"code": affiliate["code"]})
    assert response.status_code == 200
    body = response.json()
    assert body["stats"]["total_referrals"] == 2
    assert body["stats"]["pending_commissions"] == 1400 + 700
    assert body["stats"]["paid_commissions"] == 0
    assert body["tier"]["name"] == "Iniciante"
    assert body["top_packages"] == [{"title": "Gramado Natal Luz", "count": 2, "total": 30000}]
    assert len(body["monthly_stats"]) == 1
    assert body["monthly_stats"][0]["count"] == 2
    assert len(body["recent_referrals"]) == 2

    assert (await client.get("/api/affiliates/stats")).status_code == 400
    assert (await client.get("/api/affiliates/stats", params={"id": 999})).status_code == 404


async def test_public_stats_hide_private_affiliate_data(client, seeded_test_data):
    response = await client.post("/api/affiliates", json={
        "name": "Carla Souza", "email": "carla@example.com", "cpf": "123.456.789-00", "pix_key": "carla-pix"})
    affiliate = response.json()

    body = (await client.get("/api/affiliates/stats", params={"id": affiliate["id"]})).json()
    assert body["affiliate"] == {"id": affiliate["id"], "name": "Carla Souza",
                                 "code": affiliate["code"], "status": "pending"}
    for private in ("email", "cpf", "pix_key", "bank_account"):
        assert private not in body["affiliate"]


async def test_tiers(client):
    tiers = (await client.get("/api/affiliates/tiers")).json()
    assert [t["name"] for t in tiers] == ["Iniciante", "Bronze", "Prata", "Ouro"]
    assert tiers[-1]["max_sales"] is None
    assert tiers[1]["bonus"] == 30000


async def test_me_registration(client, seeded_test_data, customer_headers):
    assert (await client.get("/api/affiliates/me")).status_code == 401

    response = await client.get("/api/affiliates/me", headers=customer_headers)
    assert response.json() == {"is_affiliate": False, "data": None}

    response = await client.post("/api/affiliates/me", json={"pix_key": "11999990000"}, headers=customer_headers)
    assert response.status_code == 201
    assert response.json()["name"] == "Maria Silva"
    assert response.json()["email"] == "maria@example.com"
    assert re.fullmatch(r"MARIA[0-9A-Z]{4}", response.json()["code"])

    response = await client.post("/api/affiliates/me", json={}, headers=customer_headers)
    assert response.status_code == 409

    me = (await client.get("/api/affiliates/me", headers=customer_headers)).json()
    assert me["is_affiliate"] is True
    assert me["data"]["stats"]["total_referrals"] == 0


async def test_me_provisions_new_token_subject(client, seeded_test_data):
    token = create_access_token({"sub": "brand-new", "email": "novo@example.com", "first_name": "Novo"})
    response = await client.get("/api/users/me", headers=auth_header(token))
    assert response.status_code == 200
    assert response.json()["email"] == "novo@example.com"
    assert response.json()["role"] == "USER"
    assert response.json()["is_admin"] is False

    response = await client.get("/api/users/me", headers=auth_header("not-a-token"))
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired token"}
