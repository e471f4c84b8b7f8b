import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from parkguide.app import create_app
from parkguide.config import Settings, get_settings
from parkguide.db import InMemoryParkStore, SqlParkStore
from parkguide.errors import StorageUnavailableError


def review_payload(park_id="macritchie", name="Alice", rating=5, text="Great trail"):
    return {
        "parkId": park_id,
        "reviewerName": name,
        "rating": rating,
        "reviewText": text,
    }


class ParksApiTestsMixin:
    """Endpoint behaviour that must hold for every storage backend."""

    def make_store(self):
        raise NotImplementedError

    def setUp(self):
        self.store = self.make_store()
        self.app = create_app(store=self.store)
        self.client = TestClient(self.app)

    def test_review_scenario(self):
        response = self.client.post("/api/reviews", json=review_payload())
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["review"]["rating"], 5)
        self.assertEqual(payload["review"]["parkId"], "macritchie")
        self.assertIn("id", payload["review"])
        self.assertIn("createdAt", payload["review"])

        listing = self.client.get(
            "/api/reviews/macritchie", params={"limit": 10, "offset": 0}
        )
        self.assertEqual(listing.status_code, 200)
        reviews = listing.json()["reviews"]
        self.assertEqual(reviews[0]["reviewerName"], "Alice")
        self.assertEqual(reviews[0]["reviewText"], "Great trail")

    def test_rating_bounds(self):
        for rating in (1, 2, 3, 4, 5):
            response = self.client.post("/api/reviews", json=review_payload(rating=rating))
            self.assertEqual(response.status_code, 201)
            self.assertEqual(response.json()["review"]["rating"], rating)

        for rating in (0, 6, 7, -1, 4.5, "5", True):
            response = self.client.post(
                "/api/reviews", json=review_payload(park_id="x", name="Bob", rating=rating)
            )
            self.assertEqual(response.status_code, 400, msg=f"rating={rating!r}")
            self.assertFalse(response.json()["success"])
            self.assertIn("error", response.json())

    def test_rejected_review_is_not_stored(self):
        response = self.client.post(
            "/api/reviews", json=review_payload(park_id="x", name="Bob", rating=7, text="ok")
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.client.get("/api/reviews/x").json()["reviews"], [])

    def test_review_missing_fields(self):
        body = review_payload()
        del body["reviewText"]
        response = self.client.post("/api/reviews", json=body)
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/reviews", json=review_payload(name=""))
        self.assertEqual(response.status_code, 400)

    def test_malformed_json_is_bad_request(self):
        response = self.client.post(
            "/api/reviews",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_contact_message_is_write_only(self):
        response = self.client.post(
            "/api/contact",
            json={
                "name": "Alice",
                "email": "alice@nparks.gov.sg",
                "message": "Are dogs allowed on the boardwalk?",
            },
        )
        self.assertEqual(response.status_code, 201)
        payload = response.json()
        self.assertTrue(payload["success"])
        self.assertEqual(payload["message"]["name"], "Alice")
        self.assertEqual(payload["message"]["email"], "alice@nparks.gov.sg")
        self.assertIn("createdAt", payload["message"])

        self.assertEqual(self.client.get("/api/contact").status_code, 405)
        self.assertEqual(self.client.get("/api/reviews").json()["reviews"], [])

    def test_contact_validation(self):
        bad_bodies = [
            {"name": "", "email": "alice@nparks.gov.sg", "message": "hi"},
            {"name": "Alice", "email": "not-an-email", "message": "hi"},
            {"name": "Alice", "email": "alice@nparks.gov.sg", "message": ""},
            {"name": "Alice", "email": "alice@nparks.gov.sg"},
        ]
        for body in bad_bodies:
            response = self.client.post("/api/contact", json=body)
            self.assertEqual(response.status_code, 400, msg=str(body))
            self.assertFalse(response.json()["success"])

    def test_park_listing_is_filtered(self):
        self.client.post("/api/reviews", json=review_payload(park_id="macritchie"))
        self.client.post("/api/reviews", json=review_payload(park_id="bukit-timah"))
        self.client.post("/api/reviews", json=review_payload(park_id="macritchie"))

        reviews = self.client.get("/api/reviews/macritchie").json()["reviews"]
        self.assertEqual(len(reviews), 2)
        self.assertTrue(all(r["parkId"] == "macritchie" for r in reviews))

        everything = self.client.get("/api/reviews").json()["reviews"]
        self.assertEqual(len(everything), 3)

    def test_pagination_windows(self):
        for i in range(5):
            self.client.post("/api/reviews", json=review_payload(name=f"Walker {i}"))

        def ids(params):
            response = self.client.get("/api/reviews", params=params)
            self.assertEqual(response.status_code, 200)
            return [r["id"] for r in response.json()["reviews"]]

        first = ids({"limit": 2, "offset": 0})
        second = ids({"limit": 2, "offset": 2})
        self.assertTrue(set(first).isdisjoint(second))
        self.assertEqual(first + second, ids({"limit": 4, "offset": 0}))

    def test_leading_digits_of_limit_are_used(self):
        for i in range(5):
            self.client.post("/api/reviews", json=review_payload(park_id="p", name=f"W{i}"))
        for raw in ("2abc", "2.9"):
            response = self.client.get("/api/reviews/p", params={"limit": raw})
            self.assertEqual(response.status_code, 200)
            self.assertEqual(len(response.json()["reviews"]), 2, msg=raw)

    def test_offset_past_the_end_is_an_empty_page(self):
        self.client.post("/api/reviews", json=review_payload())
        for path in ("/api/reviews", "/api/reviews/macritchie"):
            response = self.client.get(path, params={"offset": "99999999999999999999"})
            self.assertEqual(response.status_code, 200, msg=path)
            self.assertEqual(response.json(), {"success": True, "reviews": []})

    def test_blank_text_is_rejected(self):
        response = self.client.post("/api/reviews", json=review_payload(name="   "))
        self.assertEqual(response.status_code, 400)
        response = self.client.post(
            "/api/contact",
            json={"name": "   ", "email": "alice@nparks.gov.sg", "message": " "},
        )
        self.assertEqual(response.status_code, 400)

    def test_text_is_trimmed(self):
        response = self.client.post(
            "/api/reviews", json=review_payload(name="  Alice ", text=" Shady trail\n")
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["review"]["reviewerName"], "Alice")
        self.assertEqual(response.json()["review"]["reviewText"], "Shady trail")

    def test_non_numeric_query_falls_back_to_defaults(self):
        for i in range(3):
            self.client.post("/api/reviews", json=review_payload(name=f"Walker {i}"))
        response = self.client.get(
            "/api/reviews/macritchie", params={"limit": "abc", "offset": "xyz"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["reviews"]), 3)


class InMemoryParksApiTests(ParksApiTestsMixin, unittest.TestCase):
    def make_store(self):
        return InMemoryParkStore()

    def test_listing_is_newest_first(self):
        for name in ("First", "Second", "Third"):
            self.client.post("/api/reviews", json=review_payload(name=name))
        reviews = self.client.get("/api/reviews").json()["reviews"]
        self.assertEqual(
            [r["reviewerName"] for r in reviews], ["Third", "Second", "First"]
        )

    def test_limit_is_clamped(self):
        self.app.dependency_overrides[get_settings] = lambda: Settings(max_page_limit=3)
        for i in range(5):
            self.client.post("/api/reviews", json=review_payload(name=f"Walker {i}"))
        response = self.client.get("/api/reviews", params={"limit": 1000})
        self.assertEqual(len(response.json()["reviews"]), 3)

    def test_storage_failure_on_read_is_server_error(self):
        with patch.object(
            self.store, "get_all_reviews", side_effect=StorageUnavailableError("down")
        ):
            response = self.client.get("/api/reviews")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"success": False, "error": "Failed to fetch reviews"}
        )

    def test_storage_failure_on_write_is_server_error(self):
        with patch.object(
            self.store, "create_park_review", side_effect=StorageUnavailableError("down")
        ):
            response = self.client.post("/api/reviews", json=review_payload())
        self.assertEqual(response.status_code, 500)
        self.assertFalse(response.json()["success"])

    def test_storage_failure_on_contact_is_server_error(self):
        with patch.object(
            self.store,
            "create_contact_message",
            side_effect=StorageUnavailableError("down"),
        ):
            response = self.client.post(
                "/api/contact",
                json={"name": "Alice", "email": "alice@nparks.gov.sg", "message": "Hi"},
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(),
            {"success": False, "error": "Failed to save contact message"},
        )
        self.assertEqual(self.store.contact_messages, {})

    def test_health_reports_memory_backend(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "storage": "memory"})


class SqlParksApiTests(ParksApiTestsMixin, unittest.TestCase):
    """
    Same endpoint checks with reviews and messages kept in SQLite.
    """

    def make_store(self):
        return SqlParkStore("sqlite+pysqlite:///:memory:")

    def tearDown(self):
        self.store.dispose()

    def test_health_reports_sql_backend(self):
        self.assertEqual(self.client.get("/api/health").json()["storage"], "sql")


if __name__ == "__main__":
    unittest.main()
