from travel_agency.models import Contact, ContactPriority


async def send_message(client, name="Lucia Lima", message="Gostaria de saber sobre excursões para grupos."):
    response = await client.post("/api/contacts", json={
        "name": name, "email": "lucia@example.com", "subject": "Grupo", "message": message})
    assert response.status_code == 201, response.text
    return response.json()


async def test_contact_form_validation(client, seeded_test_data):
    response = await client.post("/api/contacts", json={"name": "L", "email": "lucia@example.com",
                                                        "message": "Mensagem longa o bastante"})
    assert response.status_code == 422
    response = await client.post("/api/contacts", json={"name": "Lucia", "email": "lucia",
                                                        "message": "Mensagem longa o bastante"})
    assert response.status_code == 422
    response = await client.post("/api/contacts", json={"name": "Lucia", "email": "lucia@example.com",
                                                        "message": "curta"})
    assert response.status_code == 422


async def test_new_contact_is_pending_and_normal(client, seeded_test_data):
    contact = await send_message(client)
    assert contact["status"] == "pending"
    assert contact["priority"] == "normal"
    assert contact["read_at"] is None


async def test_list_orders_by_priority_then_newest(client, seeded_test_data, admin_headers, db_session_factory):
    async with db_session_factory() as session:
        session.add_all([
            Contact(name="Baixa", email="a@example.com", message="prioridade baixa aqui", priority=ContactPriority.LOW),
            Contact(name="Urgente", email="b@example.com", message="prioridade urgente aqui",
                    priority=ContactPriority.URGENT),
            Contact(name="Alta", email="c@example.com", message="prioridade alta aqui", priority=ContactPriority.HIGH),
        ])
        await session.commit()
    await send_message(client)

    response = await client.get("/api/contacts", headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert [c["name"] for c in body["data"]] == ["Urgente", "Alta", "Lucia Lima", "Baixa"]
    assert body["stats"] == {"total": 4, "pending": 4, "in_progress": 0, "resolved": 0, "archived": 0}
    assert body["pagination"] == {"page": 1, "limit": 20, "total": 4, "total_pages": 1}

    page = (await client.get("/api/contacts", params={"limit": 3, "page": 2}, headers=admin_headers)).json()
    assert [c["name"] for c in page["data"]] == ["Baixa"]
    assert page["pagination"]["total_pages"] == 2

    found = (await client.get("/api/contacts", params={"search": "URGENTE"}, headers=admin_headers)).json()
    assert [c["name"] for c in found["data"]] == ["Urgente"]
    high = (await client.get("/api/contacts", params={"priority": "high"}, headers=admin_headers)).json()
    assert [c["name"] for c in high["data"]] == ["Alta"]


async def test_get_marks_read_once(client, seeded_test_data, admin_headers):
    contact = await send_message(client)
    first = (await client.get(f"/api/contacts/{contact['id']}", headers=admin_headers)).json()
    assert first["read_at"] is not None
    second = (await client.get(f"/api/contacts/{contact['id']}", headers=admin_headers)).json()
    assert second["read_at"] == first["read_at"]


async def test_patch_resolves(client, seeded_test_data, admin_headers):
    contact = await send_message(client)
    url = f"/api/contacts/{contact['id']}"
    response = await client.patch(url, json={"status": "in_progress", "assigned_to": "Ana",
                                             "priority": "high"}, headers=admin_headers)
    assert response.json()["status"] == "in_progress"
    assert response.json()["resolved_at"] is None

    response = await client.patch(url, json={"status": "resolved", "notes": "Orçamento enviado"},
                                  headers=admin_headers)
    body = response.json()
    assert body["status"] == "resolved"
    assert body["resolved_at"] is not None
    assert body["assigned_to"] == "Ana"
    assert body["priority"] == "high"

    status = (await client.get("/api/contacts", params={"status": "resolved"}, headers=admin_headers)).json()
    assert len(status["data"]) == 1


async def test_delete_is_super_admin_only(client, seeded_test_data, admin_headers, super_admin_headers):
    contact = await send_message(client)
    url = f"/api/contacts/{contact['id']}"
    assert (await client.delete(url, headers=admin_headers)).status_code == 403
    assert (await client.delete(url, headers=super_admin_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 404
