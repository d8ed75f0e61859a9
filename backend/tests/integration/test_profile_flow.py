"""
Integration tests: full student and admin flows over HTTP
"""
import asyncio

import pytest
from httpx import AsyncClient


async def _register(client: AsyncClient, email: str, role: str = "student") -> dict:
    response = await client.post(
        "/api/auth/register",
        json={"name": "Test Person", "email": email, "password": "pw123456", "role": role},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.mark.asyncio
async def test_student_end_to_end(client: AsyncClient, sample_profile):
    """Register, log in, create profile, read it back, and see the completion flag"""
    await _register(client, "jane@x.edu")

    login = await client.post("/api/auth/login", json={"email": "jane@x.edu", "password": "pw123456"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

    # Before a profile exists the own-profile route asks for completion
    blocked = await client.get("/api/profile/me", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["requiresProfileCompletion"] is True
    assert blocked.json()["message"] == "Please complete your profile first"

    created = await client.post("/api/profile", json=sample_profile, headers=headers)
    assert created.status_code == 201
    body = created.json()
    assert body["message"] == "Profile created successfully"
    fees = body["data"]["feeDetails"]
    assert fees["totalFees"] == 100000
    assert fees["feesPaid"] == 40000
    assert fees["feesPending"] == 60000
    assert body["data"]["userId"]["email"] == "jane@x.edu"

    me = await client.get("/api/profile/me", headers=headers)
    assert me.status_code == 200
    profile = me.json()["data"]
    assert profile["academicDetails"]["studentId"] == "CS2024001"
    assert profile["personalInfo"]["address"]["country"] == "India"
    assert profile["feeDetails"]["paymentHistory"][0]["transactionId"] == "TXN0001"

    user = await client.get("/api/auth/me", headers=headers)
    assert user.json()["data"]["profileCompleted"] is True


@pytest.mark.asyncio
async def test_second_profile_rejected(client: AsyncClient, auth_headers, profile_factory):
    first = await client.post("/api/profile", json=profile_factory("CS1"), headers=auth_headers)
    second = await client.post("/api/profile", json=profile_factory("CS2"), headers=auth_headers)

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.json()["message"] == "Profile already exists for this user"

    me = await client.get("/api/auth/me", headers=auth_headers)
    assert me.json()["data"]["profileCompleted"] is True


@pytest.mark.asyncio
async def test_duplicate_student_id_rejected(client: AsyncClient, make_user, headers_for, profile_factory):
    first, second = await make_user(), await make_user()

    await client.post("/api/profile", json=profile_factory("CS2024001"), headers=headers_for(first))
    response = await client.post("/api/profile", json=profile_factory("CS2024001"), headers=headers_for(second))

    assert response.status_code == 400
    assert response.json()["message"] == "studentId already exists. Please use a different value."


@pytest.mark.asyncio
async def test_concurrent_creates_with_same_student_id(client: AsyncClient, make_user, headers_for, profile_factory):
    """Two simultaneous creates for one studentId: exactly one wins"""
    first, second = await make_user(), await make_user()

    responses = await asyncio.gather(
        client.post("/api/profile", json=profile_factory("RACE1"), headers=headers_for(first)),
        client.post("/api/profile", json=profile_factory("RACE1"), headers=headers_for(second)),
    )

    assert sorted(r.status_code for r in responses) == [201, 400]
    loser = next(r for r in responses if r.status_code == 400)
    assert loser.json()["code"] == "DUPLICATE_KEY"


@pytest.mark.asyncio
async def test_payment_dates_with_and_without_offset(client: AsyncClient, auth_headers, sample_profile):
    """An offset date and a defaulted date can sit in the same history"""
    sample_profile["feeDetails"]["paymentHistory"] = [
        {"amount": 20000, "date": "2023-08-15T10:00:00Z", "method": "online"},
        {"amount": 20000, "method": "cash"},
    ]

    response = await client.post("/api/profile", json=sample_profile, headers=auth_headers)

    assert response.status_code == 201
    fees = response.json()["data"]["feeDetails"]
    assert fees["paymentHistory"][0]["date"] == "2023-08-15T10:00:00"
    assert fees["lastPaymentDate"] == fees["paymentHistory"][1]["date"]


@pytest.mark.asyncio
async def test_create_profile_validation(client: AsyncClient, auth_headers, sample_profile):
    sample_profile["personalInfo"]["phone"] = "12345"
    sample_profile["academicDetails"]["year"] = 9

    response = await client.post("/api/profile", json=sample_profile, headers=auth_headers)

    assert response.status_code == 400
    errors = {e["field"]: e["message"] for e in response.json()["errors"]}
    assert errors["personalInfo.phone"] == "Valid 10-digit phone number is required"
    assert errors["academicDetails.year"] == "Year must be between 1 and 4"


@pytest.mark.asyncio
async def test_fees_pending_in_body_is_ignored(client: AsyncClient, auth_headers, sample_profile):
    sample_profile["feeDetails"]["feesPending"] = 1

    response = await client.post("/api/profile", json=sample_profile, headers=auth_headers)

    assert response.json()["data"]["feeDetails"]["feesPending"] == 60000


@pytest.mark.asyncio
async def test_admin_cannot_create_profile(client: AsyncClient, admin_auth_headers, sample_profile):
    response = await client.post("/api/profile", json=sample_profile, headers=admin_auth_headers)

    assert response.status_code == 403
    assert response.json()["message"] == "User role admin is not authorized to access this route"


@pytest.mark.asyncio
async def test_student_cannot_use_admin_routes(client: AsyncClient, auth_headers):
    for path in ("/api/profile/all", "/api/profile/stats/dashboard"):
        response = await client.get(path, headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["message"] == "User role student is not authorized to access this route"


@pytest.mark.asyncio
async def test_missing_or_bad_token(client: AsyncClient):
    no_token = await client.get("/api/profile/all")
    bad_token = await client.get("/api/profile/all", headers={"Authorization": "Bearer garbage"})

    assert no_token.status_code == 401
    assert no_token.json()["message"] == "Not authorized, no token"
    assert bad_token.status_code == 401
    assert bad_token.json()["message"] == "Not authorized, token failed"


@pytest.mark.asyncio
async def test_admin_manages_profiles(client: AsyncClient, admin_auth_headers, auth_headers, sample_profile):
    """Admin lists, reads, updates and deletes a student's profile"""
    created = await client.post("/api/profile", json=sample_profile, headers=auth_headers)
    profile_id = created.json()["data"]["id"]

    listing = await client.get("/api/profile/all", params={"search": "doe"}, headers=admin_auth_headers)
    assert listing.status_code == 200
    assert listing.json()["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    assert listing.json()["data"][0]["id"] == profile_id

    fetched = await client.get(f"/api/profile/{profile_id}", headers=admin_auth_headers)
    assert fetched.status_code == 200
    assert fetched.json()["data"]["personalInfo"]["firstName"] == "Jane"

    updated = await client.put(
        f"/api/profile/{profile_id}",
        json={"feeDetails": {"feesPaid": 50000}, "academicDetails": {"semester": 5}},
        headers=admin_auth_headers,
    )
    assert updated.status_code == 200
    data = updated.json()["data"]
    assert data["feeDetails"]["feesPending"] == 50000
    assert data["academicDetails"]["semester"] == 5
    assert data["academicDetails"]["course"] == "Computer Science"

    deleted = await client.delete(f"/api/profile/{profile_id}", headers=admin_auth_headers)
    assert deleted.status_code == 200
    assert deleted.json()["message"] == "Profile deleted successfully"

    gone = await client.get(f"/api/profile/{profile_id}", headers=admin_auth_headers)
    assert gone.status_code == 404

    # The owner keeps the completion flag, so the own-profile route now 404s
    own = await client.get("/api/profile/me", headers=auth_headers)
    assert own.status_code == 404
    assert own.json()["message"] == "Profile not found"


@pytest.mark.asyncio
async def test_delete_unknown_profile(client: AsyncClient, admin_auth_headers):
    response = await client.delete(
        "/api/profile/00000000-0000-0000-0000-000000000000", headers=admin_auth_headers
    )

    assert response.status_code == 404
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_listing_pagination_and_limit_clamp(client: AsyncClient, admin_auth_headers, make_user, headers_for, profile_factory):
    for index in range(15):
        student = await make_user()
        await client.post("/api/profile", json=profile_factory(f"S{index:03d}"), headers=headers_for(student))

    page_two = await client.get("/api/profile/all", params={"page": 2, "limit": 10}, headers=admin_auth_headers)
    assert page_two.status_code == 200
    assert len(page_two.json()["data"]) == 5
    assert page_two.json()["pagination"]["pages"] == 2

    clamped = await client.get("/api/profile/all", params={"limit": 1000}, headers=admin_auth_headers)
    assert clamped.json()["pagination"]["limit"] == 100
    assert len(clamped.json()["data"]) == 15


@pytest.mark.asyncio
async def test_dashboard_stats(client: AsyncClient, admin_auth_headers, make_user, headers_for, profile_factory):
    await client.post("/api/profile", json=profile_factory("A1", course="CS", year=1), headers=headers_for(await make_user()))
    await client.post("/api/profile", json=profile_factory("A2", course="CS", year=3), headers=headers_for(await make_user()))

    response = await client.get("/api/profile/stats/dashboard", headers=admin_auth_headers)

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["totalStudents"] == 2
    assert stats["feeStats"] == {"totalFees": 200000, "totalPaid": 80000, "totalPending": 120000}
    assert stats["courseStats"] == [{"course": "CS", "count": 2}]
    assert [y["year"] for y in stats["yearStats"]] == [1, 3]

