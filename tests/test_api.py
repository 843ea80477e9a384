"""
Integration tests for the REST API endpoints.

Runs the real application against the per-test SQLite database; callers
authenticate with locally signed bearer tokens.
"""

import uuid
from datetime import date, timedelta

import pytest

from tests.conftest import auth_headers

TOMORROW = (date.today() + timedelta(days=1)).isoformat()

RIDE = {
    "from_location": "COEP Hostel",
    "to_location": "Pune Airport",
    "from_lat": 18.5293,
    "from_lng": 73.8567,
    "to_lat": 18.5821,
    "to_lng": 73.9197,
    "departure_date": TOMORROW,
    "departure_time": "07:30:00",
    "available_seats": 1,
    "price": 120.0,
}


async def _signup(client, name: str, role: str = "rider") -> uuid.UUID:
    user_id = uuid.uuid4()
    resp = await client.put(
        "/api/v1/profiles/me",
        json={"full_name": name, "role": role},
        headers=auth_headers(user_id),
    )
    assert resp.status_code == 200
    return user_id


async def _offer_ride(client, driver_id, **overrides) -> dict:
    resp = await client.post(
        "/api/v1/rides", json={**RIDE, **overrides}, headers=auth_headers(driver_id)
    )
    assert resp.status_code == 201
    return resp.json()


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        resp = await client.post("/api/v1/rides", json=RIDE)
        assert resp.status_code == 401
        assert resp.json()["detail"] == "You must be logged in"

    @pytest.mark.asyncio
    async def test_bad_token(self, client):
        resp = await client.get(
            "/api/v1/rides/mine", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_search_is_public(self, client):
        resp = await client.get("/api/v1/rides")
        assert resp.status_code == 200
        assert resp.json() == []


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        resp = await client.get("/api/v1/admin/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "pending_notifications": 0}


class TestRideEndpoints:
    @pytest.mark.asyncio
    async def test_offer_ride(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        ride = await _offer_ride(client, driver, available_seats=3)
        assert ride["driver_id"] == str(driver)
        assert ride["status"] == "active"
        assert ride["max_passengers"] == 3

    @pytest.mark.asyncio
    async def test_riders_cannot_offer(self, client):
        rider = await _signup(client, "Sneha Gupta")
        resp = await client.post(
            "/api/v1/rides", json=RIDE, headers=auth_headers(rider)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"

    @pytest.mark.asyncio
    async def test_seats_above_limit_is_422(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        resp = await client.post(
            "/api/v1/rides",
            json={**RIDE, "available_seats": 4, "max_passengers": 2},
            headers=auth_headers(driver),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_unknown_ride_is_404(self, client):
        resp = await client.get(
            f"/api/v1/rides/{uuid.uuid4()}", headers=auth_headers(uuid.uuid4())
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_active_is_not_a_valid_target(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        ride = await _offer_ride(client, driver)
        resp = await client.patch(
            f"/api/v1/rides/{ride['id']}/status",
            json={"status": "active"},
            headers=auth_headers(driver),
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_search_hides_own_rides(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        ride = await _offer_ride(client, driver)

        mine = await client.get("/api/v1/rides", headers=auth_headers(driver))
        assert mine.json() == []
        theirs = await client.get(
            "/api/v1/rides",
            params={"to": "airport", "near_lat": 18.53, "near_lng": 73.857},
            headers=auth_headers(rider),
        )
        assert [r["id"] for r in theirs.json()] == [ride["id"]]

    @pytest.mark.asyncio
    async def test_fare_estimate(self, client):
        resp = await client.get(
            "/api/v1/rides/fare-estimate",
            params={"distance_km": 10, "duration_min": 20, "passengers": 2},
        )
        assert resp.status_code == 200
        assert resp.json()["fare"] == 42.0


class TestBookingFlow:
    @pytest.mark.asyncio
    async def test_last_seat_flow(self, client, app):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        latecomer = await _signup(client, "Karan Joshi")
        ride = await _offer_ride(client, driver)
        ride_url = f"/api/v1/rides/{ride['id']}"

        # Request a seat
        resp = await client.post(f"{ride_url}/bookings", headers=auth_headers(rider))
        assert resp.status_code == 201
        booking = resp.json()
        assert booking["status"] == "pending"

        # Same passenger again
        resp = await client.post(f"{ride_url}/bookings", headers=auth_headers(rider))
        assert resp.status_code == 409
        assert resp.json()["code"] == "already_booked"

        # Only the driver may confirm
        booking_url = f"/api/v1/bookings/{booking['id']}"
        resp = await client.patch(
            booking_url, json={"status": "confirmed"}, headers=auth_headers(rider)
        )
        assert resp.status_code == 403

        resp = await client.patch(
            booking_url, json={"status": "confirmed"}, headers=auth_headers(driver)
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "confirmed"

        details = (
            await client.get(ride_url, headers=auth_headers(rider))
        ).json()
        assert details["available_seats"] == 0
        assert details["driver"]["full_name"] == "Aarav Sharma"
        assert details["passengers"][0]["passenger"]["full_name"] == "Sneha Gupta"

        resp = await client.post(
            f"{ride_url}/bookings", headers=auth_headers(latecomer)
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "no_seats_available"

        # Complete, then try to cancel
        resp = await client.patch(
            f"{ride_url}/status",
            json={"status": "completed"},
            headers=auth_headers(driver),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        resp = await client.patch(
            f"{ride_url}/status",
            json={"status": "cancelled"},
            headers=auth_headers(driver),
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "invalid_transition"

        bookings = (
            await client.get(f"{ride_url}/bookings", headers=auth_headers(driver))
        ).json()
        assert [b["status"] for b in bookings] == ["completed"]

        mine = (
            await client.get("/api/v1/rides/mine", headers=auth_headers(rider))
        ).json()
        assert mine[0]["user_role"] == "passenger"
        assert mine[0]["booking_status"] == "completed"

    @pytest.mark.asyncio
    async def test_self_booking(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        ride = await _offer_ride(client, driver)
        resp = await client.post(
            f"/api/v1/rides/{ride['id']}/bookings", headers=auth_headers(driver)
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "self_booking_forbidden"


class TestContactDetails:
    @pytest.mark.asyncio
    async def test_ride_reads_require_login(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        ride = await _offer_ride(client, driver)
        assert (await client.get(f"/api/v1/rides/{ride['id']}")).status_code == 401
        resp = await client.get(f"/api/v1/rides/{ride['id']}/bookings")
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_only_participants_see_contact_details(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        outsider = await _signup(client, "Karan Joshi")
        contacts = {driver: "aarav@coep.ac.in", rider: "sneha@coep.ac.in"}
        for user_id, email in contacts.items():
            await client.put(
                "/api/v1/profiles/me",
                json={"email": email, "phone_number": "+91 98220 00000"},
                headers=auth_headers(user_id),
            )
        ride = await _offer_ride(client, driver)
        ride_url = f"/api/v1/rides/{ride['id']}"
        await client.post(f"{ride_url}/bookings", headers=auth_headers(rider))

        seen_by_rider = (
            await client.get(ride_url, headers=auth_headers(rider))
        ).json()
        assert seen_by_rider["driver"]["email"] == "aarav@coep.ac.in"
        assert seen_by_rider["driver"]["phone_number"] == "+91 98220 00000"

        seen_by_outsider = (
            await client.get(ride_url, headers=auth_headers(outsider))
        ).json()
        assert seen_by_outsider["driver"]["full_name"] == "Aarav Sharma"
        assert seen_by_outsider["driver"]["email"] is None
        assert seen_by_outsider["driver"]["phone_number"] is None
        [booking] = (
            await client.get(f"{ride_url}/bookings", headers=auth_headers(outsider))
        ).json()
        assert booking["passenger"]["full_name"] == "Sneha Gupta"
        assert booking["passenger"]["email"] is None

        [booking] = (
            await client.get(f"{ride_url}/bookings", headers=auth_headers(driver))
        ).json()
        assert booking["passenger"]["email"] == "sneha@coep.ac.in"

    @pytest.mark.asyncio
    async def test_profile_contact_is_for_its_owner(self, client):
        rider = await _signup(client, "Sneha Gupta")
        await client.put(
            "/api/v1/profiles/me",
            json={"email": "sneha@coep.ac.in"},
            headers=auth_headers(rider),
        )
        url = f"/api/v1/profiles/{rider}"
        assert (await client.get(url)).json()["email"] is None
        own = await client.get(url, headers=auth_headers(rider))
        assert own.json()["email"] == "sneha@coep.ac.in"


class TestNotificationEndpoints:
    @pytest.mark.asyncio
    async def test_inbox_flow(self, client, app):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        ride = await _offer_ride(client, driver)
        await client.post(
            f"/api/v1/rides/{ride['id']}/bookings", headers=auth_headers(rider)
        )
        await app.state.dispatcher.drain()

        inbox = (
            await client.get("/api/v1/notifications", headers=auth_headers(driver))
        ).json()
        assert [n["notification_type"] for n in inbox] == ["booking_request"]
        assert inbox[0]["read"] is False

        resp = await client.patch(
            f"/api/v1/notifications/{inbox[0]['id']}/read",
            headers=auth_headers(rider),
        )
        assert resp.status_code == 403

        resp = await client.post(
            "/api/v1/notifications/read-all", headers=auth_headers(driver)
        )
        assert resp.json() == {"updated": 1}


class TestProfileEndpoints:
    @pytest.mark.asyncio
    async def test_missing_profile_is_404(self, client):
        resp = await client.get(
            "/api/v1/profiles/me", headers=auth_headers(uuid.uuid4())
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_rating_flow(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        ride = await _offer_ride(client, driver)
        body = {"ride_id": ride["id"], "rated_id": str(driver), "rating": 4}

        resp = await client.post(
            "/api/v1/ratings", json=body, headers=auth_headers(rider)
        )
        assert resp.status_code == 201
        resp = await client.post(
            "/api/v1/ratings", json=body, headers=auth_headers(rider)
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "already_rated"

        profile = (await client.get(f"/api/v1/profiles/{driver}")).json()
        assert profile["rating"] == 4.0
        ratings = (await client.get(f"/api/v1/profiles/{driver}/ratings")).json()
        assert ratings[0]["rater_name"] == "Sneha Gupta"


class TestMessageEndpoints:
    @pytest.mark.asyncio
    async def test_conversation_flow(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        await client.put(
            "/api/v1/profiles/me",
            json={"email": "aarav@coep.ac.in"},
            headers=auth_headers(driver),
        )

        resp = await client.post(
            "/api/v1/messages",
            json={"receiver_id": str(driver), "content": "Is the 7:30 ride on?"},
            headers=auth_headers(rider),
        )
        assert resp.status_code == 201
        assert resp.json()["read"] is False

        unread = await client.get(
            "/api/v1/messages/unread-count", headers=auth_headers(driver)
        )
        assert unread.json() == {"unread": 1}

        [conversation] = (
            await client.get(
                "/api/v1/messages/conversations", headers=auth_headers(driver)
            )
        ).json()
        assert conversation["other_user"]["full_name"] == "Sneha Gupta"
        assert conversation["unread_count"] == 1

        [conversation] = (
            await client.get(
                "/api/v1/messages/conversations", headers=auth_headers(rider)
            )
        ).json()
        assert conversation["other_user"]["email"] is None

        thread = await client.get(
            f"/api/v1/messages/{rider}", headers=auth_headers(driver)
        )
        assert [m["content"] for m in thread.json()] == ["Is the 7:30 ride on?"]
        unread = await client.get(
            "/api/v1/messages/unread-count", headers=auth_headers(driver)
        )
        assert unread.json() == {"unread": 0}

    @pytest.mark.asyncio
    async def test_send_errors(self, client):
        rider = await _signup(client, "Sneha Gupta")
        resp = await client.post(
            "/api/v1/messages",
            json={"receiver_id": str(rider), "content": "hi"},
            headers=auth_headers(rider),
        )
        assert resp.status_code == 403
        resp = await client.post(
            "/api/v1/messages",
            json={"receiver_id": str(uuid.uuid4()), "content": "   "},
            headers=auth_headers(rider),
        )
        assert resp.status_code == 422
        assert resp.json()["code"] == "invalid_request"
        resp = await client.post(
            "/api/v1/messages", json={"receiver_id": str(rider), "content": "hi"}
        )
        assert resp.status_code == 401


class TestQuickRouteEndpoints:
    @pytest.mark.asyncio
    async def test_offer_ride_along_route(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        route_body = {
            key: RIDE[key]
            for key in (
                "from_location",
                "to_location",
                "from_lat",
                "from_lng",
                "to_lat",
                "to_lng",
            )
        }
        resp = await client.post(
            "/api/v1/quick-routes",
            json={**route_body, "estimated_duration_min": 25},
            headers=auth_headers(driver),
        )
        assert resp.status_code == 201
        route = resp.json()
        assert route["distance_km"] > 0

        listed = (await client.get("/api/v1/quick-routes")).json()
        assert [r["id"] for r in listed] == [route["id"]]

        resp = await client.post(
            f"/api/v1/quick-routes/{route['id']}/rides",
            json={
                "departure_date": TOMORROW,
                "departure_time": "06:00:00",
                "available_seats": 2,
                "price": 80.0,
            },
            headers=auth_headers(driver),
        )
        assert resp.status_code == 201
        assert resp.json()["to_location"] == "Pune Airport"
        assert resp.json()["available_seats"] == 2

    @pytest.mark.asyncio
    async def test_unknown_route_is_404(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        resp = await client.post(
            f"/api/v1/quick-routes/{uuid.uuid4()}/rides",
            json={
                "departure_date": TOMORROW,
                "departure_time": "06:00:00",
                "price": 80.0,
            },
            headers=auth_headers(driver),
        )
        assert resp.status_code == 404


class TestScheduledRideEndpoints:
    @pytest.mark.asyncio
    async def test_weekly_and_custom(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        headers = auth_headers(driver)
        resp = await client.post(
            "/api/v1/rides/scheduled",
            json={
                **RIDE,
                "schedule_type": "weekly",
                "schedule_days": ["friday", "Monday"],
            },
            headers=headers,
        )
        assert resp.status_code == 201
        weekly = resp.json()
        assert weekly["is_scheduled"] is True
        assert weekly["schedule"]["schedule_days"] == ["monday", "friday"]

        first = (date.today() + timedelta(days=3)).isoformat()
        custom_body = {**RIDE, "schedule_type": "custom", "schedule_dates": [first]}
        del custom_body["departure_date"]
        resp = await client.post(
            "/api/v1/rides/scheduled", json=custom_body, headers=headers
        )
        assert resp.status_code == 201
        assert resp.json()["scheduled_for"] == first
        assert resp.json()["departure_date"] == first

        listed = (await client.get("/api/v1/rides/scheduled")).json()
        assert len(listed) == 2
        assert listed[0]["scheduled_for"] == first

    @pytest.mark.asyncio
    async def test_daily_needs_departure_date(self, client):
        driver = await _signup(client, "Aarav Sharma", "driver")
        body = {**RIDE, "schedule_type": "daily"}
        del body["departure_date"]
        resp = await client.post(
            "/api/v1/rides/scheduled", json=body, headers=auth_headers(driver)
        )
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_mine_requires_login(self, client):
        resp = await client.get("/api/v1/rides/scheduled", params={"mine": "true"})
        assert resp.status_code == 401


class TestShareEndpoints:
    @pytest.mark.asyncio
    async def test_share_flow(self, client, app):
        driver = await _signup(client, "Aarav Sharma", "driver")
        rider = await _signup(client, "Sneha Gupta")
        ride = await _offer_ride(client, driver)
        url = f"/api/v1/rides/{ride['id']}/shares"
        body = {"shared_with_id": str(rider)}

        resp = await client.post(url, json=body, headers=auth_headers(driver))
        assert resp.status_code == 201
        share = resp.json()
        assert share["status"] == "pending"
        resp = await client.post(url, json=body, headers=auth_headers(driver))
        assert resp.status_code == 409
        assert resp.json()["code"] == "already_shared"

        await app.state.dispatcher.drain()
        inbox = (
            await client.get("/api/v1/notifications", headers=auth_headers(rider))
        ).json()
        assert [n["notification_type"] for n in inbox] == ["ride_shared"]

        [listed] = (
            await client.get("/api/v1/shares", headers=auth_headers(rider))
        ).json()
        assert listed["ride"]["id"] == ride["id"]

        share_url = f"/api/v1/shares/{share['id']}"
        resp = await client.patch(
            share_url, json={"status": "declined"}, headers=auth_headers(driver)
        )
        assert resp.status_code == 403
        resp = await client.patch(
            share_url, json={"status": "pending"}, headers=auth_headers(rider)
        )
        assert resp.status_code == 422
        resp = await client.patch(
            share_url, json={"status": "declined"}, headers=auth_headers(rider)
        )
        assert resp.json()["status"] == "declined"
