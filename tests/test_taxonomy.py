from taxonomy import slugify


def test_slugify():
    assert slugify("Mystery & Thriller") == "mystery-thriller"
    assert slugify("  Self-Help ") == "self-help"


def test_category_crud(client, admin_headers, customer_headers):
    payload = {"name": "Science Fiction", "description": "Sci-fi"}
    assert client.post("/api/categories", json=payload, headers=customer_headers).status_code == 403

    r = client.post("/api/categories", json=payload, headers=admin_headers)
    assert r.status_code == 201
    created = r.json()["data"]
    assert created["slug"] == "science-fiction"

    assert client.get("/api/categories/science-fiction").json()["data"]["id"] == created["id"]
    assert client.get(f"/api/categories/{created['id']}").json()["data"]["name"] == "Science Fiction"

    dup = client.post("/api/categories", json=payload, headers=admin_headers)
    assert dup.status_code == 400

    r = client.put(f"/api/categories/{created['id']}", json={"name": "Sci-Fi"}, headers=admin_headers)
    assert r.json()["data"]["slug"] == "sci-fi"

    assert client.delete(f"/api/categories/{created['id']}", headers=admin_headers).status_code == 200
    assert client.get("/api/categories/sci-fi").status_code == 404


def test_category_update_ignores_null_name(client, admin_headers):
    created = client.post("/api/categories", json={"name": "Poetry"}, headers=admin_headers).json()["data"]
    r = client.put(f"/api/categories/{created['id']}", json={"name": None, "description": "Verse"},
                   headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["name"] == "Poetry"
    assert data["slug"] == "poetry"
    assert data["description"] == "Verse"


def test_list_categories_sorted(client, admin_headers):
    for name in ("Romance", "Comedy"):
        client.post("/api/categories", json={"name": name}, headers=admin_headers)
    r = client.get("/api/categories").json()
    assert [c["name"] for c in r["data"]] == ["Comedy", "Romance"]


def test_referenced_category_cannot_be_deleted(client, category, make_book, admin_headers):
    make_book()
    r = client.delete(f"/api/categories/{category['_id']}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_author_crud(client, admin_headers):
    r = client.post("/api/authors", json={"name": "George Orwell", "nationality": "British"}, headers=admin_headers)
    assert r.status_code == 201
    author_id = r.json()["data"]["id"]
    assert client.get(f"/api/authors/{author_id}").json()["data"]["name"] == "George Orwell"

    r = client.put(f"/api/authors/{author_id}", json={"bio": "Essayist"}, headers=admin_headers)
    assert r.json()["data"]["bio"] == "Essayist"
    assert client.delete(f"/api/authors/{author_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/authors/{author_id}").status_code == 404


def test_referenced_director_cannot_be_deleted(client, director, make_movie, admin_headers):
    make_movie()
    assert client.delete(f"/api/directors/{director['_id']}", headers=admin_headers).status_code == 400


def test_reference_writes_require_auth(client):
    assert client.post("/api/authors", json={"name": "Anon"}).status_code == 401
