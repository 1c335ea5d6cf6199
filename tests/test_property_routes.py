import uuid

import pytest


def listing(**overrides):
    payload = {
        "title": "Sunny flat near the river",
        "description": "Two bedrooms, balcony, close to the metro.",
        "price": 1200,
        "location": "Cairo",
        "bedrooms": 2,
        "bathrooms": 1,
        "area": 85,
        "type": "apartment",
        "features": ["balcony", "parking"],
        "images": ["https://img.example.com/1.jpg", "https://img.example.com/2.jpg"],
        "forRent": True,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def landlord(signup):
    return signup("landlord", is_landlord=True)


@pytest.fixture
def admin(signup):
    return signup("admin", admin=True)


def create_listing(client, owner, **overrides):
    resp = client.post("/v2/properties", json=listing(**overrides), headers=owner.headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestCreate:
    def test_landlord_listing_starts_pending(self, client, landlord):
        prop = create_listing(client, landlord)

        assert prop["approvalStatus"] == "pending"
        assert prop["status"] == "active"
        assert prop["ownerId"] == landlord.id
        assert prop["type"] == "apartment"
        assert prop["images"] == [
            "https://img.example.com/1.jpg",
            "https://img.example.com/2.jpg",
        ]

    def test_tenant_cannot_list(self, client, signup):
        tenant = signup("tenant")

        resp = client.post("/v2/properties", json=listing(), headers=tenant.headers)

        assert resp.status_code == 403

    def test_must_be_for_sale_or_rent(self, client, landlord):
        resp = client.post(
            "/v2/properties",
            json=listing(forRent=False, forSale=False),
            headers=landlord.headers,
        )

        assert resp.status_code == 422

    def test_landlord_cannot_feature_own_listing(self, client, landlord):
        prop = create_listing(client, landlord, isFeatured=True)

        assert prop["isFeatured"] is False


class TestVisibility:
    def test_pending_listing_hidden_from_public(self, client, landlord, signup):
        prop = create_listing(client, landlord)
        stranger = signup("stranger")

        assert client.get("/v2/properties").json() == []
        assert client.get(f"/v2/properties/{prop['id']}").status_code == 404
        assert (
            client.get(f"/v2/properties/{prop['id']}", headers=stranger.headers).status_code
            == 404
        )
        assert (
            client.get(f"/v2/properties/{prop['id']}", headers=landlord.headers).status_code
            == 200
        )

    def test_approved_listing_is_public(self, client, landlord, admin):
        prop = create_listing(client, landlord)

        resp = client.post(f"/v2/properties/{prop['id']}/approve", headers=admin.headers)

        assert resp.status_code == 200
        assert resp.json()["approvalStatus"] == "approved"
        public = client.get("/v2/properties").json()
        assert [p["id"] for p in public] == [prop["id"]]
        assert client.get(f"/v2/properties/{prop['id']}").status_code == 200

    def test_featured_lists_at_most_three(self, client, landlord, admin):
        for i in range(4):
            prop = create_listing(client, admin, title=f"Featured {i}", isFeatured=True)
            client.post(f"/v2/properties/{prop['id']}/approve", headers=admin.headers)
        create_listing(client, landlord)

        featured = client.get("/v2/properties/featured").json()

        assert len(featured) == 3
        assert all(p["isFeatured"] for p in featured)

    def test_unknown_property_is_404(self, client):
        assert client.get(f"/v2/properties/{uuid.uuid4()}").status_code == 404


class TestModeration:
    def test_pending_queue_is_admin_only(self, client, landlord, admin):
        create_listing(client, landlord)

        assert client.get("/v2/properties/pending", headers=landlord.headers).status_code == 403
        pending = client.get("/v2/properties/pending", headers=admin.headers).json()
        assert len(pending) == 1

    def test_reject_requires_note(self, client, landlord, admin):
        prop = create_listing(client, landlord)

        blank = client.post(
            f"/v2/properties/{prop['id']}/reject", json={"note": "  "}, headers=admin.headers
        )
        rejected = client.post(
            f"/v2/properties/{prop['id']}/reject",
            json={"note": "Photos are blurry"},
            headers=admin.headers,
        )

        assert blank.status_code == 422
        assert rejected.status_code == 200
        assert rejected.json()["approvalStatus"] == "rejected"
        assert rejected.json()["rejectionNote"] == "Photos are blurry"

    def test_owner_edit_sends_listing_back_to_review(self, client, landlord, admin):
        prop = create_listing(client, landlord)
        client.post(f"/v2/properties/{prop['id']}/approve", headers=admin.headers)

        resp = client.patch(
            f"/v2/properties/{prop['id']}", json={"price": 1500}, headers=landlord.headers
        )

        assert resp.status_code == 200
        assert resp.json()["price"] == 1500
        assert resp.json()["approvalStatus"] == "pending"

    def test_owner_can_mark_sold_without_review(self, client, landlord, admin):
        prop = create_listing(client, landlord, forSale=True)
        client.post(f"/v2/properties/{prop['id']}/approve", headers=admin.headers)

        resp = client.patch(
            f"/v2/properties/{prop['id']}", json={"status": "sold"}, headers=landlord.headers
        )

        assert resp.json()["status"] == "sold"
        assert resp.json()["approvalStatus"] == "approved"

    def test_other_landlord_cannot_edit_or_delete(self, client, landlord, signup):
        prop = create_listing(client, landlord)
        rival = signup("rival", is_landlord=True)

        edit = client.patch(
            f"/v2/properties/{prop['id']}", json={"price": 1}, headers=rival.headers
        )
        delete = client.delete(f"/v2/properties/{prop['id']}", headers=rival.headers)

        assert edit.status_code == 403
        assert delete.status_code == 403

    def test_update_cannot_clear_both_offer_types(self, client, landlord):
        prop = create_listing(client, landlord)

        resp = client.patch(
            f"/v2/properties/{prop['id']}", json={"forRent": False}, headers=landlord.headers
        )

        assert resp.status_code == 422

    def test_owner_can_delete(self, client, landlord):
        prop = create_listing(client, landlord)

        resp = client.delete(f"/v2/properties/{prop['id']}", headers=landlord.headers)

        assert resp.status_code == 200
        assert (
            client.get(f"/v2/properties/{prop['id']}", headers=landlord.headers).status_code
            == 404
        )


def approved_listing(client, owner, admin, **overrides):
    prop = create_listing(client, owner, **overrides)
    resp = client.post(f"/v2/properties/{prop['id']}/approve", headers=admin.headers)
    assert resp.status_code == 200, resp.text
    return prop


class TestBrowseFilters:
    @pytest.fixture
    def catalogue(self, client, landlord, admin):
        return {
            "house": approved_listing(
                client,
                landlord,
                admin,
                title="Family house with garden",
                type="house",
                location="Giza",
                price=250000,
                bedrooms=4,
                forSale=True,
                forRent=False,
            ),
            "flat": approved_listing(
                client,
                landlord,
                admin,
                title="Sunny flat near the river",
                type="apartment",
                location="Cairo",
                price=1200,
                bedrooms=2,
            ),
            "studio": approved_listing(
                client,
                landlord,
                admin,
                title="Compact studio",
                type="studio",
                location="New Cairo",
                price=800,
                bedrooms=0,
                forSale=True,
            ),
        }

    def titles(self, client, **params):
        resp = client.get("/v2/properties", params=params)
        assert resp.status_code == 200, resp.text
        return sorted(p["title"] for p in resp.json())

    def test_type_and_listing_type_combine(self, client, catalogue):
        assert self.titles(client, type="house", listingType="sale") == [
            "Family house with garden"
        ]
        assert self.titles(client, type="house", listingType="rent") == []

    def test_listing_type_alone(self, client, catalogue):
        assert self.titles(client, listingType="rent") == [
            "Compact studio",
            "Sunny flat near the river",
        ]
        assert self.titles(client, listingType="sale") == [
            "Compact studio",
            "Family house with garden",
        ]

    def test_search_term_matches_title_or_location(self, client, catalogue):
        assert self.titles(client, q="GARDEN") == ["Family house with garden"]
        assert self.titles(client, q="cairo") == [
            "Compact studio",
            "Sunny flat near the river",
        ]

    def test_location_price_and_bedrooms(self, client, catalogue):
        assert self.titles(client, location="giza") == ["Family house with garden"]
        assert self.titles(client, minPrice=1000, maxPrice=5000) == [
            "Sunny flat near the river"
        ]
        assert self.titles(client, bedrooms=2) == [
            "Family house with garden",
            "Sunny flat near the river",
        ]

    def test_bad_filters_are_rejected(self, client, catalogue):
        assert client.get("/v2/properties", params={"listingType": "lease"}).status_code == 422
        assert client.get("/v2/properties", params={"type": "castle"}).status_code == 422
        resp = client.get("/v2/properties", params={"minPrice": 10, "maxPrice": 5})
        assert resp.status_code == 400


class TestMyListings:
    def test_owner_sees_every_review_state(self, client, landlord, admin, signup):
        pending = create_listing(client, landlord, title="Waiting")
        approved = approved_listing(client, landlord, admin, title="Live")
        rejected = create_listing(client, landlord, title="Blurry")
        client.post(
            f"/v2/properties/{rejected['id']}/reject",
            json={"note": "Photos are blurry"},
            headers=admin.headers,
        )
        other = signup("other", is_landlord=True)
        create_listing(client, other, title="Not mine")

        resp = client.get("/v2/properties/mine", headers=landlord.headers)

        assert resp.status_code == 200
        states = {p["id"]: p["approvalStatus"] for p in resp.json()}
        assert states == {
            pending["id"]: "pending",
            approved["id"]: "approved",
            rejected["id"]: "rejected",
        }

    def test_requires_authentication(self, client):
        assert client.get("/v2/properties/mine").status_code == 401
