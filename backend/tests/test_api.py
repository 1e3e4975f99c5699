"""HTTP API behaviour through the FastAPI test client."""

from unittest.mock import patch
from urllib.parse import unquote

from marketplace.utils.constants import CATEGORY_CODES
from marketplace.utils.db import (ContactLogRepository, Product,
                                  ProductRepository)


def _auth(profile):
    return {"X-User-Id": str(profile.id)}


def _submission(**overrides):
    data = {
        "name": "Paket Dekorasi Rustic",
        "description": "Dekorasi pelaminan rustic lengkap dengan bunga segar",
        "category": "decoration",
        "location": "Banjarmasin",
        "price_from": "15000000",
        "price_to": "25000000",
    }
    data.update(overrides)
    return data


class TestHealth:
    def test_root(self, test_client):
        assert test_client.get("/").json() == {"message": "Ok"}

    def test_health(self, test_client):
        response = test_client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["db_healthy"] is True


def test_catalogue_options(test_client):
    body = test_client.get("/api/v1/categories").json()

    assert tuple(c["id"] for c in body["categories"]) == CATEGORY_CODES
    assert [s["id"] for s in body["sort_options"]] == [
        "newest", "featured", "price_low", "price_high"
    ]
    assert "per orang" in body["price_units"]


class TestListing:
    """test the category listing endpoint."""

    def test_defaults(self, test_client, make_product):
        make_product(price_from=25000000)

        response = test_client.get("/api/v1/products")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["page"] == 1
        assert body["total_pages"] == 1
        assert body["sort"] == "newest"
        item = body["items"][0]
        assert item["category_name"] == "Fotografer"
        assert item["price_label"] == "Rp\u00a025.000.000/paket"

    def test_unpriced_product_label(self, test_client, make_product):
        make_product()

        item = test_client.get("/api/v1/products").json()["items"][0]

        assert item["price_label"] == "Hubungi untuk harga"

    def test_invalid_params_are_field_errors(self, test_client, recwarn):
        response = test_client.get("/api/v1/products", params={"page": "0", "sort": "x"})

        assert response.status_code == 422
        errors = {e["field"]: e["message"] for e in response.json()["detail"]}
        assert errors == {"page": "Halaman minimal 1", "sort": "Urutan tidak dikenal"}
        assert not [w for w in recwarn if "UNPROCESSABLE" in str(w.message)]

    def test_empty_filter_form(self, test_client, make_product):
        make_product()

        response = test_client.get("/api/v1/products?search=&category=")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["search"] is None
        assert body["category"] is None

    def test_filters_and_pages(self, test_client, make_product):
        for i in range(13):
            make_product(f"Gedung Resepsi {i}", category="venue")
        make_product("Paket Foto")

        body = test_client.get(
            "/api/v1/products", params={"category": "venue", "page": "2"}
        ).json()

        assert body["total"] == 13
        assert body["total_pages"] == 2
        assert body["category"] == "venue"
        assert len(body["items"]) == 1


class TestQuickSearch:
    def test_results(self, test_client, make_product):
        make_product("Makeup Pengantin Sunda", category="makeup")
        make_product("Paket Foto")

        body = test_client.get("/api/v1/search", params={"q": " sunda "}).json()

        assert body["query"] == "sunda"
        assert [r["name"] for r in body["results"]] == ["Makeup Pengantin Sunda"]

    def test_short_query_returns_nothing(self, test_client, make_product):
        make_product("Paket Foto")

        body = test_client.get("/api/v1/search", params={"q": "a"}).json()

        assert body["results"] == []

    def test_wildcards_are_literal(self, test_client, make_product):
        make_product("Paket Foto")

        body = test_client.get("/api/v1/search", params={"q": "%%"}).json()

        assert body["results"] == []


class TestProductDetail:
    def test_get_listed_product(self, test_client, make_product):
        product = make_product()

        response = test_client.get(f"/api/v1/products/{product.id}")

        assert response.status_code == 200
        assert response.json()["slug"] == product.slug

    def test_pending_product_not_available(self, test_client, make_product):
        product = make_product(status="pending")

        response = test_client.get(f"/api/v1/products/{product.id}")

        assert response.status_code == 404

    def test_similar(self, test_client, make_product):
        product = make_product("Paket Foto A")
        other = make_product("Paket Foto B")

        response = test_client.get(f"/api/v1/products/{product.id}/similar")

        assert [p["id"] for p in response.json()] == [other.id]


class TestSubmitProduct:
    """test product submission by vendors."""

    def test_vendor_submission_is_pending(self, test_client, test_db, vendor):
        response = test_client.post(
            "/api/v1/products", json=_submission(), headers=_auth(vendor)
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["slug"] == "paket-dekorasi-rustic"
        assert body["price_from"] == 15000000

        # not listed until approved
        assert ProductRepository(test_db).get_listed(body["id"]) is None

    def test_inverted_price_range(self, test_client, vendor):
        response = test_client.post(
            "/api/v1/products",
            json=_submission(price_from="30000000"),
            headers=_auth(vendor),
        )

        assert response.status_code == 422
        assert response.json()["detail"] == [
            {
                "field": "price_to",
                "message": "Harga maksimal harus lebih besar dari harga minimal",
            }
        ]

    def test_infinite_price_rejected_and_not_stored(self, test_client, test_db, vendor):
        response = test_client.post(
            "/api/v1/products",
            json=_submission(price_from="inf", price_to="infinity"),
            headers=_auth(vendor),
        )

        assert response.status_code == 422
        fields = {e["field"] for e in response.json()["detail"]}
        assert "price_from" in fields
        assert test_db.query(Product).count() == 0

    def test_requires_user(self, test_client):
        response = test_client.post("/api/v1/products", json=_submission())

        assert response.status_code == 401

    def test_unknown_user(self, test_client):
        response = test_client.post(
            "/api/v1/products", json=_submission(), headers={"X-User-Id": "999"}
        )

        assert response.status_code == 401

    def test_buyer_cannot_submit(self, test_client, buyer):
        response = test_client.post(
            "/api/v1/products", json=_submission(), headers=_auth(buyer)
        )

        assert response.status_code == 403


class TestContact:
    """test the WhatsApp contact hand-off."""

    def test_contact_logs_and_returns_link(self, test_client, test_db, vendor, buyer, make_product):
        product = make_product()

        response = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Rina", "user_whatsapp": "6281311112222"},
            headers=_auth(buyer),
        )

        assert response.status_code == 201
        body = response.json()
        url = body["whatsapp_url"]
        assert url.startswith("https://wa.me/6281234567890?text=")
        assert unquote(url.split("?text=")[1]) == (
            "Halo, saya tertarik dengan produk Anda.\n\n"
            f"Ref: user:{buyer.id}|product:{product.id}"
        )

        log = ContactLogRepository(test_db).get_by_id(body["contact_id"])
        assert log.status == "contacted"
        assert log.user_id == buyer.id
        assert log.vendor_name == "Studio Foto Elegant"

    def test_anonymous_contact(self, test_client, make_product):
        product = make_product()

        response = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Tamu", "user_whatsapp": "0813", "message": "Halo"},
        )

        assert response.status_code == 201
        assert response.json()["whatsapp_url"].endswith(
            f"?text=Halo%0A%0ARef%3A%20product%3A{product.id}"
        )

    def test_unknown_user_id_contacts_anonymously(self, test_client, test_db, make_product):
        product = make_product()

        response = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Tamu", "user_whatsapp": "0813", "message": "Halo"},
            headers={"X-User-Id": "999"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["whatsapp_url"].endswith(
            f"?text=Halo%0A%0ARef%3A%20product%3A{product.id}"
        )
        assert ContactLogRepository(test_db).get_by_id(body["contact_id"]).user_id is None

    def test_contact_unavailable_product(self, test_client, make_product):
        product = make_product(status="rejected")

        response = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Tamu", "user_whatsapp": "0813"},
        )

        assert response.status_code == 404

    def test_vendor_manages_contacts(self, test_client, vendor, buyer, make_product):
        product = make_product()
        contact_id = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Rina", "user_whatsapp": "6281311112222"},
            headers=_auth(buyer),
        ).json()["contact_id"]

        listing = test_client.get(
            f"/api/v1/vendors/{vendor.id}/contacts", headers=_auth(vendor)
        )
        assert [c["id"] for c in listing.json()] == [contact_id]

        replied = test_client.patch(
            f"/api/v1/contacts/{contact_id}",
            json={"status": "replied"},
            headers=_auth(vendor),
        )
        assert replied.status_code == 200
        assert replied.json()["status"] == "replied"

        reopened = test_client.patch(
            f"/api/v1/contacts/{contact_id}",
            json={"status": "contacted"},
            headers=_auth(vendor),
        )
        assert reopened.status_code == 409

    def test_other_users_cannot_manage_contacts(self, test_client, vendor, buyer, make_product):
        product = make_product()
        contact_id = test_client.post(
            f"/api/v1/products/{product.id}/contact",
            json={"user_name": "Rina", "user_whatsapp": "6281311112222"},
        ).json()["contact_id"]

        listing = test_client.get(
            f"/api/v1/vendors/{vendor.id}/contacts", headers=_auth(buyer)
        )
        update = test_client.patch(
            f"/api/v1/contacts/{contact_id}",
            json={"status": "replied"},
            headers=_auth(buyer),
        )

        assert listing.status_code == 403
        assert update.status_code == 403


class TestFavoritesAndViews:
    def test_toggle_favorite(self, test_client, buyer, make_product):
        product = make_product()
        url = f"/api/v1/products/{product.id}/favorite"

        assert test_client.post(url, headers=_auth(buyer)).json()["favorited"] is True
        assert test_client.post(url, headers=_auth(buyer)).json()["favorited"] is False

    def test_view_is_queued(self, test_client, buyer, make_product):
        product = make_product()

        with patch("marketplace.services.tracking_service.increment_view_task") as task:
            response = test_client.post(
                f"/api/v1/products/{product.id}/view", headers=_auth(buyer)
            )

        assert response.status_code == 202
        assert response.json() == {"product_id": product.id, "queued": True}
        task.apply_async.assert_called_once_with(args=[product.id, buyer.id], countdown=0.5)

    def test_vendor_view_of_own_product_rejected(self, test_client, vendor, make_product):
        product = make_product()

        with patch("marketplace.services.tracking_service.increment_view_task") as task:
            response = test_client.post(
                f"/api/v1/products/{product.id}/view", headers=_auth(vendor)
            )

        assert response.status_code == 403
        task.apply_async.assert_not_called()

    def test_anonymous_view_rejected(self, test_client, make_product):
        product = make_product()

        response = test_client.post(f"/api/v1/products/{product.id}/view")

        assert response.status_code == 401
