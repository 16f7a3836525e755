"""
HTTP tests for the bookings, jobs, notifications and health routers

Run against the real app with get_db pointed at the in-memory test database
and JWTs minted the same way the auth service would.
"""

import pytest

from app.models import Evidence, Job, Notification


JOURNEY = {
    "dial2_collection": "No",
    "security_requirements": "Sign in at reception",
    "id_required": "Photo ID",
    "loading_bay_location": "Rear yard",
    "vehicle_height_restrictions": "None",
    "door_lift_size": "Standard",
    "road_works_public_events": "None",
    "manual_handling_requirements": "Trolley available",
}


class TestAuthentication:
    def test_missing_token(self, api):
        response = api.get("/api/jobs")
        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_invalid_token(self, api):
        response = api.get("/api/bookings", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_cookie_token(self, api, auth, admin):
        token = auth(admin)["Authorization"].split(" ", 1)[1]
        api.cookies.set("access_token", token)
        response = api.get("/api/jobs")
        assert response.status_code == 200
        assert response.json()["success"] is True


class TestBookingsApi:
    def test_client_creates_booking(self, api, auth, client_user, client_org):
        response = api.post("/api/bookings", json={
            "client_id": client_org.id,
            "site_name": "Head Office",
            "erp_job_number": "ERP-7001",
            "assets": [{"category_name": "Laptop", "quantity": 3}],
        }, headers=auth(client_user))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "created"
        assert data["client_id"] == client_org.id
        assert data["assets"][0]["category_name"] == "Laptop"
        assert data["status_history"][0]["notes"] == "Booking created"

    def test_driver_cannot_create_booking(self, api, auth, driver):
        response = api.post("/api/bookings", json={"site_name": "Depot"}, headers=auth(driver))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_request_validation_maps_to_400(self, api, auth, admin):
        response = api.post("/api/bookings", json={"charity_percent": 150}, headers=auth(admin))
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert "charity_percent" in error["fields"]

    def test_list_is_scoped_and_paginated(self, api, auth, factory, tenant, client_user, client_org):
        factory.booking(tenant, client=client_org)
        factory.booking(tenant, client=client_org)
        factory.booking(tenant, client=factory.client(tenant, name="Someone Else"))

        response = api.get("/api/bookings?page_size=1", headers=auth(client_user))

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 1
        assert body["pagination"]["total"] == 2
        assert body["pagination"]["has_next"] is True

    def test_out_of_scope_booking_is_404(self, api, auth, factory, tenant, reseller):
        booking = factory.booking(tenant)
        response = api.get(f"/api/bookings/{booking.id}", headers=auth(reseller))
        assert response.status_code == 404
        assert response.json()["error"]["message"] == f'Booking with ID "{booking.id}" not found'

    def test_admin_status_change_and_history(self, api, auth, factory, tenant, admin):
        booking = factory.booking(tenant, status="scheduled")

        response = api.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "collected", "notes": "Collected by courier"},
            headers=auth(admin),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "collected"

        history = api.get(f"/api/bookings/{booking.id}/history", headers=auth(admin)).json()["data"]
        assert history[0]["status"] == "collected"
        assert history[0]["notes"] == "Collected by courier"

    def test_invalid_booking_transition(self, api, auth, factory, tenant, admin):
        booking = factory.booking(tenant, status="created")
        response = api.patch(
            f"/api/bookings/{booking.id}/status",
            json={"status": "graded"},
            headers=auth(admin),
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["from_status"] == "created"
        assert error["to_status"] == "graded"

    def test_assign_driver(self, api, auth, db, factory, tenant, admin, driver):
        booking = factory.booking(tenant)

        response = api.post(
            f"/api/bookings/{booking.id}/assign-driver",
            json={"driver_id": driver.id},
            headers=auth(admin),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "scheduled"
        assert data["driver_name"] == driver.name
        assert data["job_id"] is not None

        jobs = api.get("/api/jobs", headers=auth(driver)).json()["data"]
        assert [j["id"] for j in jobs] == [data["job_id"]]
        assert jobs[0]["status"] == "routed"

    def test_non_admin_cannot_assign(self, api, auth, factory, tenant, client_user, driver):
        booking = factory.booking(tenant, created_by=client_user)
        response = api.post(
            f"/api/bookings/{booking.id}/assign-driver",
            json={"driver_id": driver.id},
            headers=auth(client_user),
        )
        assert response.status_code == 403


class TestJobsApi:
    def test_driver_moves_own_job(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="routed", driver=driver)

        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "en-route"}, headers=auth(driver))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "en_route"
        assert data["status_history"][0]["status"] == "en_route"

    def test_job_detail_assets_are_category_and_quantity(self, api, auth, factory, tenant, admin):
        job = factory.job(tenant, status="warehouse")

        response = api.get(f"/api/jobs/{job.id}", headers=auth(admin))

        assert response.status_code == 200
        assets = response.json()["data"]["assets"]
        assert assets == [{"id": assets[0]["id"], "position": 0, "category_name": "Laptop", "quantity": 5}]

    def test_driver_cannot_touch_other_drivers_job(self, api, auth, factory, tenant, driver):
        other = factory.user(tenant, "driver", email="other-driver@example.com")
        job = factory.job(tenant, status="routed", driver=other)

        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "en_route"}, headers=auth(driver))

        assert response.status_code == 404

    def test_admin_cannot_complete(self, api, auth, factory, tenant, admin):
        job = factory.job(tenant, status="collected")

        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "completed"}, headers=auth(admin))

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "Forbidden: Only drivers can mark jobs as completed"

    def test_client_cannot_change_status(self, api, auth, factory, tenant, client_user):
        job = factory.job(tenant, status="routed")
        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "en_route"}, headers=auth(client_user))
        assert response.status_code == 403

    def test_invalid_transition(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="warehouse", driver=driver)

        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "completed"}, headers=auth(driver))

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["from_status"] == "warehouse"
        assert error["to_status"] == "completed"

    def test_unknown_status(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="routed", driver=driver)
        response = api.patch(f"/api/jobs/{job.id}/status", json={"status": "beamed"}, headers=auth(driver))
        assert response.status_code == 400

    def test_job_filters(self, api, auth, factory, tenant, admin):
        factory.job(tenant, status="routed", site_name="Riverside Depot")
        factory.job(tenant, status="collected", site_name="City Office")

        by_status = api.get("/api/jobs?status=collected", headers=auth(admin)).json()
        by_search = api.get("/api/jobs?search=RIVERSIDE", headers=auth(admin)).json()

        assert [j["site_name"] for j in by_status["data"]] == ["City Office"]
        assert [j["site_name"] for j in by_search["data"]] == ["Riverside Depot"]

    def test_driver_history_flag(self, api, auth, factory, tenant, driver):
        factory.job(tenant, status="en_route", driver=driver)
        done = factory.job(tenant, status="graded", driver=driver)

        active = api.get("/api/jobs", headers=auth(driver)).json()["data"]
        history = api.get("/api/jobs?history=true", headers=auth(driver)).json()["data"]

        assert [j["status"] for j in active] == ["en_route"]
        assert [j["id"] for j in history] == [done.id]

    def test_evidence_nested_body_and_duplicate(self, api, auth, db, factory, tenant, driver):
        job = factory.job(tenant, status="collected", driver=driver)
        payload = {
            "status": "collected",
            "evidence": {
                "photos": ["photos/a.jpg", ""],
                "signature": "data:image/png;base64,SIG",
                "seal_numbers": ["SEAL-1"],
                "notes": "All sealed",
            },
        }

        first = api.patch(f"/api/jobs/{job.id}/evidence", json=payload, headers=auth(driver))
        assert first.status_code == 201
        data = first.json()["data"]
        assert data["status"] == "collected"
        assert data["photos"] == ["photos/a.jpg"]

        second = api.patch(f"/api/jobs/{job.id}/evidence", json=payload, headers=auth(driver))
        assert second.status_code == 400
        assert "collected" in second.json()["error"]["message"]

        db.expire_all()
        assert db.query(Evidence).filter(Evidence.job_id == job.id).count() == 1

        listed = api.get(f"/api/jobs/{job.id}/evidence", headers=auth(driver)).json()["data"]
        assert len(listed) == 1

    def test_empty_evidence(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="arrived", driver=driver)
        response = api.patch(
            f"/api/jobs/{job.id}/evidence",
            json={"status": "arrived", "photos": [], "signature": ""},
            headers=auth(driver),
        )
        assert response.status_code == 400

    def test_journey_fields(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="routed", driver=driver)

        missing = api.patch(
            f"/api/jobs/{job.id}/journey",
            json=dict(JOURNEY, id_required=""),
            headers=auth(driver),
        )
        assert missing.status_code == 400
        assert "ID Required" in missing.json()["error"]["message"]

        ok = api.patch(f"/api/jobs/{job.id}/journey", json=JOURNEY, headers=auth(driver))
        assert ok.status_code == 200
        assert ok.json()["data"]["loading_bay_location"] == "Rear yard"

    def test_admin_cancels_job(self, api, auth, db, factory, tenant, admin, driver):
        job = factory.job(tenant, status="routed", driver=driver)

        response = api.post(f"/api/jobs/{job.id}/cancel", json={"notes": "Client postponed"}, headers=auth(admin))

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"
        db.expire_all()
        assert db.query(Job).filter(Job.id == job.id).one().status == "cancelled"

    def test_driver_cannot_cancel(self, api, auth, factory, tenant, driver):
        job = factory.job(tenant, status="routed", driver=driver)
        response = api.post(f"/api/jobs/{job.id}/cancel", headers=auth(driver))
        assert response.status_code == 403


class TestNotificationsApi:
    def test_list_and_mark_read(self, api, auth, db, factory, tenant, driver):
        job = factory.job(tenant, status="collected", driver=driver)
        api.patch(f"/api/jobs/{job.id}/status", json={"status": "warehouse"}, headers=auth(driver))

        listing = api.get("/api/notifications", headers=auth(driver)).json()["data"]
        assert listing["unread_count"] == 1
        notification = listing["notifications"][0]
        assert notification["title"] == "Job delivered"
        assert notification["icon"] == "check"

        marked = api.patch(f"/api/notifications/{notification['id']}/read", headers=auth(driver))
        assert marked.status_code == 200
        assert marked.json()["data"]["is_read"] is True

        unread = api.get("/api/notifications?unread_only=true", headers=auth(driver)).json()["data"]
        assert unread["notifications"] == []
        assert unread["unread_count"] == 0

    def test_cannot_read_someone_elses(self, api, auth, db, factory, tenant, driver, admin):
        note = Notification(user_id=admin.id, tenant_id=tenant.id, type="info", title="Private")
        db.add(note)
        db.commit()

        response = api.patch(f"/api/notifications/{note.id}/read", headers=auth(driver))

        assert response.status_code == 404

    def test_mark_all_read(self, api, auth, db, tenant, driver):
        for title in ("One", "Two"):
            db.add(Notification(user_id=driver.id, tenant_id=tenant.id, type="info", title=title))
        db.commit()

        response = api.patch("/api/notifications/read-all", headers=auth(driver))

        assert response.json()["data"]["updated"] == 2


class TestHealthAndMiddleware:
    def test_liveness(self, api):
        assert api.get("/health/live").json()["status"] == "alive"

    def test_readiness_checks_database(self, api):
        response = api.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "up"

    def test_request_id_is_echoed(self, api):
        response = api.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_error_envelope_carries_request_id(self, api):
        response = api.get("/api/jobs", headers={"X-Request-ID": "req-42"})
        assert response.json()["error"]["request_id"] == "req-42"
