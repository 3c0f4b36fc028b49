"""
Tests for live group projects: unit locking and booking, the admin hierarchy
editor with version checks, unit generation and the joined groups summary.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Dict, List

import pytest
from httpx import AsyncClient
from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.live_group import LiveGroupProject, LiveGroupTower, LiveGroupUnit, UnitStatus
from app.models.user import User
from app.services.joined_live_groups import _to_float, joined_group_entry
from app.schemas.live_group import HierarchySync, TowerInput, UnitInput
from app.services.live_group import LiveGroupService, release_expired_locks, unit_label
from app.utils.exceptions import BookedUnitProtectedError
from app.utils.timeutils import utc_now
from tests.conftest import LiveGroupFactory, auth_headers, payment_signature


async def units_by_label(db: AsyncSession, project: LiveGroupProject) -> Dict[str, LiveGroupUnit]:
    result = await db.execute(
        select(LiveGroupUnit)
        .join(LiveGroupTower, LiveGroupTower.id == LiveGroupUnit.tower_id)
        .where(LiveGroupTower.project_id == project.id)
        .execution_options(populate_existing=True)
    )
    return {unit.unit_number: unit for unit in result.scalars().all()}


def book_payload() -> Dict[str, Dict[str, str]]:
    return {"paymentData": payment_signature()}


class TestProjectReads:

    async def test_list_hides_closed_projects(self, async_client: AsyncClient, test_admin: User,
                                              db_session: AsyncSession):
        await LiveGroupFactory.create_project(db_session, test_admin, title="Open project")
        closed = await LiveGroupFactory.create_project(db_session, test_admin, title="Closed project")
        closed.status = "closed"
        await db_session.commit()

        response = await async_client.get("/api/live-grouping-dynamic")

        projects = response.json()["projects"]
        assert [p["title"] for p in projects] == ["Open project"]
        assert projects[0]["tower_count"] == 1

    async def test_full_project(self, async_client: AsyncClient, test_admin: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)

        response = await async_client.get(f"/api/live-grouping-dynamic/{project.id}/full")

        assert response.status_code == status.HTTP_200_OK
        towers = response.json()["project"]["towers"]
        assert towers[0]["tower_name"] == "Tower A"
        assert [u["unit_number"] for u in towers[0]["units"]] == ["1A", "1B"]

    async def test_unknown_project(self, async_client: AsyncClient):
        response = await async_client.get("/api/live-grouping-dynamic/not-a-uuid/full")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUnitLocking:

    async def test_lock_then_other_user_is_refused(self, async_client: AsyncClient, test_admin: User,
                                                   test_user: User, test_owner: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        url = f"/api/live-grouping-dynamic/units/{unit.id}/lock"
        buyer_id = str(test_user.id)
        buyer, rival = auth_headers(test_user), auth_headers(test_owner)

        locked = await async_client.post(url, headers=buyer)
        assert locked.status_code == status.HTTP_200_OK
        assert locked.json()["unit"]["status"] == "locked"
        assert locked.json()["unit"]["locked_by"] == buyer_id

        refused = await async_client.post(url, headers=rival)
        assert refused.status_code == status.HTTP_400_BAD_REQUEST
        assert "locked by another user" in refused.json()["error"]["message"]

        relocked = await async_client.post(url, headers=buyer)
        assert relocked.status_code == status.HTTP_200_OK

    async def test_expired_lock_can_be_taken(self, async_client: AsyncClient, test_admin: User,
                                             test_user: User, test_owner: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        unit.status = UnitStatus.LOCKED.value
        unit.locked_by = test_user.id
        unit.locked_at = utc_now() - timedelta(minutes=11)
        await db_session.commit()

        response = await async_client.post(
            f"/api/live-grouping-dynamic/units/{unit.id}/lock", headers=auth_headers(test_owner)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["unit"]["locked_by"] == str(test_owner.id)

    async def test_sweeper_releases_expired_locks(self, test_admin: User, test_user: User,
                                                  db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        units = await units_by_label(db_session, project)
        for label, minutes in (("1A", 15), ("1B", 2)):
            units[label].status = UnitStatus.LOCKED.value
            units[label].locked_by = test_user.id
            units[label].locked_at = utc_now() - timedelta(minutes=minutes)
        await db_session.commit()

        released = await release_expired_locks(db_session)

        assert released == 1
        units = await units_by_label(db_session, project)
        assert units["1A"].status == "available"
        assert units["1A"].locked_by is None
        assert units["1B"].status == "locked"


class TestUnitBooking:

    async def test_booking_order(self, async_client: AsyncClient, test_admin: User, test_user: User,
                                 db_session: AsyncSession, razorpay_orders):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]

        response = await async_client.post(
            "/api/live-grouping-dynamic/create-booking-order",
            json={"unit_id": str(unit.id), "amount": 50000},
            headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["orderId"] == "order_test123"
        assert response.json()["keyId"] == "rzp_test_key"

    async def test_book_marks_unit_and_mails(self, async_client: AsyncClient, test_admin: User, test_user: User,
                                             db_session: AsyncSession, mail_outbox):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        headers = auth_headers(test_user)
        await async_client.post(f"/api/live-grouping-dynamic/units/{unit.id}/lock", headers=headers)

        response = await async_client.post(
            f"/api/live-grouping-dynamic/units/{unit.id}/book", json=book_payload(), headers=headers
        )

        assert response.status_code == status.HTTP_200_OK
        booked = response.json()["unit"]
        assert booked["status"] == "booked"
        assert booked["booked_by"] == str(test_user.id)
        assert booked["locked_by"] is None

    async def test_booked_unit_cannot_be_locked_or_rebooked(self, async_client: AsyncClient, test_admin: User,
                                                            test_user: User, test_owner: User,
                                                            db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        base = f"/api/live-grouping-dynamic/units/{unit.id}"
        rival = auth_headers(test_owner)
        await async_client.post(f"{base}/book", json=book_payload(), headers=auth_headers(test_user))

        lock = await async_client.post(f"{base}/lock", headers=rival)
        rebook = await async_client.post(f"{base}/book", json=book_payload(), headers=rival)

        assert lock.status_code == status.HTTP_400_BAD_REQUEST
        assert rebook.status_code == status.HTTP_400_BAD_REQUEST
        assert rebook.json()["error"]["message"] == "Unit is already booked"

    async def test_book_requires_valid_signature(self, async_client: AsyncClient, test_admin: User,
                                                 test_user: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        payload = {"paymentData": {**payment_signature(), "razorpay_signature": "bad"}}

        response = await async_client.post(
            f"/api/live-grouping-dynamic/units/{unit.id}/book", json=payload, headers=auth_headers(test_user)
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        await db_session.refresh(unit)
        assert unit.status == "available"

    async def test_book_unit_locked_by_someone_else(self, async_client: AsyncClient, test_admin: User,
                                                    test_user: User, test_owner: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        await async_client.post(f"/api/live-grouping-dynamic/units/{unit.id}/lock", headers=auth_headers(test_owner))

        response = await async_client.post(
            f"/api/live-grouping-dynamic/units/{unit.id}/book", json=book_payload(), headers=auth_headers(test_user)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestAdminProjects:

    async def test_buyer_cannot_use_admin_routes(self, async_client: AsyncClient, test_user: User):
        response = await async_client.post(
            "/api/live-grouping-dynamic/admin/projects", json={"title": "Nope"}, headers=auth_headers(test_user)
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_create_project_uses_first_image(self, async_client: AsyncClient, test_admin: User):
        response = await async_client.post(
            "/api/live-grouping-dynamic/admin/projects",
            json={"title": "Palm Heights", "images": ["/uploads/a.jpg", "/uploads/b.jpg"]},
            headers=auth_headers(test_admin)
        )

        assert response.status_code == status.HTTP_201_CREATED
        project = response.json()["project"]
        assert project["image"] == "/uploads/a.jpg"
        assert project["status"] == "live"
        assert project["version"] == 1

    async def test_create_hierarchy(self, async_client: AsyncClient, test_admin: User):
        response = await async_client.post(
            "/api/live-grouping-dynamic/admin/projects/hierarchy",
            json={
                "title": "Twin Towers",
                "towers": [
                    {"tower_name": "T1", "total_floors": 2, "units": [
                        {"floor_number": 1, "unit_number": "1A", "price": 3000000},
                        {"floor_number": 2, "unit_number": "2A", "price": 3100000},
                    ]},
                    {"tower_name": "T2", "total_floors": 1, "units": [
                        {"floor_number": 0, "unit_number": "GF-A"},
                    ]},
                ],
            },
            headers=auth_headers(test_admin)
        )

        assert response.status_code == status.HTTP_201_CREATED
        project = response.json()["project"]
        assert project["total_slots"] == 3
        assert [t["tower_name"] for t in project["towers"]] == ["T1", "T2"]

    async def test_add_tower_and_generate_units(self, async_client: AsyncClient, test_admin: User,
                                                db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin, unit_labels=())
        headers = auth_headers(test_admin)

        tower = await async_client.post(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/towers",
            json={"tower_name": "Tower B", "total_floors": 2},
            headers=headers
        )
        assert tower.status_code == status.HTTP_201_CREATED
        tower_id = tower.json()["tower"]["id"]

        generated = await async_client.post(
            f"/api/live-grouping-dynamic/admin/towers/{tower_id}/generate-units",
            json={"unitsPerFloor": 2, "hasBasement": True, "hasGroundFloor": True, "pricePerUnit": 2500000},
            headers=headers
        )
        assert generated.json()["unitsCreated"] == 8

        again = await async_client.post(
            f"/api/live-grouping-dynamic/admin/towers/{tower_id}/generate-units",
            json={"unitsPerFloor": 3},
            headers=headers
        )
        assert again.json()["unitsCreated"] == 2

        full = await async_client.get(f"/api/live-grouping-dynamic/{project.id}/full")
        tower_b = [t for t in full.json()["project"]["towers"] if t["id"] == tower_id][0]
        labels = {u["unit_number"] for u in tower_b["units"]}
        assert {"B-A", "B-B", "GF-A", "GF-B", "1A", "1B", "1C", "2A", "2B", "2C"} == labels
        assert full.json()["project"]["total_slots"] == 10

    async def test_update_unit_price_and_protect_booked(self, async_client: AsyncClient, test_admin: User,
                                                        test_user: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        units = await units_by_label(db_session, project)
        headers = auth_headers(test_admin)

        updated = await async_client.patch(
            f"/api/live-grouping-dynamic/admin/units/{units['1B'].id}", json={"price": 4000000}, headers=headers
        )
        assert updated.json()["unit"]["price"] == 4000000.0

        units["1A"].status = UnitStatus.BOOKED.value
        units["1A"].booked_by = test_user.id
        await db_session.commit()
        booked_url = f"/api/live-grouping-dynamic/admin/units/{units['1A'].id}"

        refused = await async_client.patch(booked_url, json={"price": 1}, headers=headers)
        assert refused.status_code == status.HTTP_409_CONFLICT

        allowed = await async_client.patch(booked_url, json={"unit_type": "3BHK"}, headers=headers)
        assert allowed.status_code == status.HTTP_200_OK
        assert allowed.json()["unit"]["price"] == 4500000.0

    async def test_status_and_delete(self, async_client: AsyncClient, test_admin: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        headers = auth_headers(test_admin)

        closed = await async_client.patch(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/status", json={"status": "closed"},
            headers=headers
        )
        assert closed.json()["project"]["status"] == "closed"

        invalid = await async_client.patch(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/status", json={"status": "sold-out"},
            headers=headers
        )
        assert invalid.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

        deleted = await async_client.delete(f"/api/live-grouping-dynamic/admin/projects/{project.id}", headers=headers)
        assert deleted.status_code == status.HTTP_200_OK
        remaining = await db_session.execute(select(LiveGroupUnit))
        assert remaining.scalars().all() == []


class TestHierarchySync:

    async def _current(self, client: AsyncClient, project_id) -> dict:
        response = await client.get(f"/api/live-grouping-dynamic/{project_id}/full")
        return response.json()["project"]

    @staticmethod
    def _tower_payload(tower: dict, units: List[dict]) -> dict:
        return {"id": tower["id"], "tower_name": tower["tower_name"], "total_floors": tower["total_floors"],
                "units": units}

    async def test_sync_updates_creates_and_deletes(self, async_client: AsyncClient, test_admin: User,
                                                    db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        current = await self._current(async_client, project.id)
        tower = current["towers"][0]
        unit_1a = [u for u in tower["units"] if u["unit_number"] == "1A"][0]

        response = await async_client.put(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/hierarchy",
            json={
                "version": current["version"],
                "description": "Updated",
                "towers": [
                    self._tower_payload(tower, [
                        {"id": unit_1a["id"], "floor_number": 1, "unit_number": "1A", "price": 4600000},
                        {"floor_number": 2, "unit_number": "2A"},
                    ]),
                    {"tower_name": "Tower B", "total_floors": 1, "units": [{"floor_number": 1, "unit_number": "1A"}]},
                ],
            },
            headers=auth_headers(test_admin)
        )

        assert response.status_code == status.HTTP_200_OK
        synced = response.json()["project"]
        assert synced["version"] == 2
        assert synced["description"] == "Updated"
        assert synced["total_slots"] == 3
        tower_a = synced["towers"][0]
        assert sorted(u["unit_number"] for u in tower_a["units"]) == ["1A", "2A"]
        assert [u["price"] for u in tower_a["units"] if u["unit_number"] == "1A"] == [4600000.0]

    async def test_stale_version_is_conflict(self, async_client: AsyncClient, test_admin: User,
                                             db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        current = await self._current(async_client, project.id)
        tower = current["towers"][0]
        payload = {
            "version": current["version"],
            "towers": [self._tower_payload(tower, [{"id": u["id"], "floor_number": u["floor_number"],
                                                     "unit_number": u["unit_number"]} for u in tower["units"]])],
        }
        url = f"/api/live-grouping-dynamic/admin/projects/{project.id}/hierarchy"

        first = await async_client.put(url, json=payload, headers=auth_headers(test_admin))
        second = await async_client.put(url, json=payload, headers=auth_headers(test_admin))

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_409_CONFLICT
        assert "expected version 1" in second.json()["error"]["message"]

    async def test_booked_unit_cannot_be_removed(self, async_client: AsyncClient, test_admin: User,
                                                 test_user: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        units = await units_by_label(db_session, project)
        units["1A"].status = UnitStatus.BOOKED.value
        units["1A"].booked_by = test_user.id
        await db_session.commit()
        project_id = project.id
        current = await self._current(async_client, project_id)
        tower = current["towers"][0]

        response = await async_client.put(
            f"/api/live-grouping-dynamic/admin/projects/{project_id}/hierarchy",
            json={"version": current["version"], "towers": [self._tower_payload(tower, [])]},
            headers=auth_headers(test_admin)
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "1A" in response.json()["error"]["message"]
        after = await self._current(async_client, project_id)
        assert after["version"] == current["version"]
        assert len(after["towers"][0]["units"]) == 2

    async def test_booked_unit_same_price_is_accepted(self, async_client: AsyncClient, test_admin: User,
                                                      test_user: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        units = await units_by_label(db_session, project)
        units["1A"].status = UnitStatus.BOOKED.value
        units["1A"].booked_by = test_user.id
        await db_session.commit()
        current = await self._current(async_client, project.id)
        tower = current["towers"][0]
        unit_payloads = [
            {"id": u["id"], "floor_number": u["floor_number"], "unit_number": u["unit_number"], "price": "4500000.00"}
            for u in tower["units"]
        ]

        response = await async_client.put(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/hierarchy",
            json={"version": current["version"], "towers": [self._tower_payload(tower, unit_payloads)]},
            headers=auth_headers(test_admin)
        )
        assert response.status_code == status.HTTP_200_OK

    async def test_foreign_unit_id_is_rejected(self, async_client: AsyncClient, test_admin: User,
                                               db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        other = await LiveGroupFactory.create_project(db_session, test_admin, title="Other")
        foreign_unit = (await units_by_label(db_session, other))["1A"]
        current = await self._current(async_client, project.id)
        tower = current["towers"][0]

        response = await async_client.put(
            f"/api/live-grouping-dynamic/admin/projects/{project.id}/hierarchy",
            json={"version": current["version"], "towers": [self._tower_payload(tower, [
                {"id": str(foreign_unit.id), "floor_number": 1, "unit_number": "1A"},
            ])]},
            headers=auth_headers(test_admin)
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_booking_after_load_still_blocks_removal(self, test_admin: User, test_user: User,
                                                           db_session: AsyncSession, monkeypatch):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        service = LiveGroupService(db_session)
        loaded = await service.get_full(project.id)
        project_id, version = loaded.id, loaded.version
        tower = loaded.towers[0]
        units = {unit.unit_number: unit for unit in tower.units}
        booked_id = units["1A"].id
        payload = HierarchySync(version=version, towers=[TowerInput(
            id=str(tower.id), tower_name=tower.tower_name, total_floors=tower.total_floors,
            units=[UnitInput(id=str(units["1B"].id), floor_number=1, unit_number="1B")],
        )])

        load = service.get_full

        async def load_then_book(pid):
            snapshot = await load(pid)
            # A buyer books 1A after the editor state was read; the version is untouched.
            await db_session.execute(
                update(LiveGroupUnit)
                .where(LiveGroupUnit.id == booked_id)
                .values(status=UnitStatus.BOOKED.value, booked_by=test_user.id)
                .execution_options(synchronize_session=False)
            )
            await db_session.commit()
            return snapshot

        monkeypatch.setattr(service, "get_full", load_then_book)

        with pytest.raises(BookedUnitProtectedError):
            await service.sync_hierarchy(project_id, payload)

        remaining = (await db_session.execute(
            select(LiveGroupUnit.id, LiveGroupUnit.status).where(LiveGroupUnit.id == booked_id)
        )).one()
        assert remaining.status == UnitStatus.BOOKED.value
        assert await db_session.scalar(
            select(LiveGroupProject.version).where(LiveGroupProject.id == project_id)
        ) == version


class TestJoinedLiveGroups:

    async def test_joined_groups_after_booking(self, async_client: AsyncClient, test_admin: User,
                                               test_user: User, db_session: AsyncSession):
        project = await LiveGroupFactory.create_project(db_session, test_admin)
        unit = (await units_by_label(db_session, project))["1A"]
        headers = auth_headers(test_user)
        await async_client.post(f"/api/live-grouping-dynamic/units/{unit.id}/book", json=book_payload(),
                                headers=headers)

        response = await async_client.get("/api/joined-live-groups", headers=headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["count"] == 1
        entry = response.json()["joinedGroups"][0]
        assert entry["projectName"] == "Skyline Residency"
        assert entry["unitNumber"] == "Tower A - 11A"
        assert entry["userJoinedPrice"] == 4500000.0
        assert entry["buyersJoined"] == 1
        assert entry["isActivated"] is True
        assert entry["status"] == "active"

    async def test_nothing_joined(self, async_client: AsyncClient, test_user: User):
        response = await async_client.get("/api/joined-live-groups", headers=auth_headers(test_user))
        assert response.json()["joinedGroups"] == []


class TestHelpers:

    @pytest.mark.parametrize("floor, letter, expected", [(-1, "A", "B-A"), (0, "C", "GF-C"), (12, "B", "12B")])
    def test_unit_label(self, floor, letter, expected):
        assert unit_label(floor, letter) == expected

    @pytest.mark.parametrize("value, expected", [
        ("45 Lakh", 45.0),
        ("₹1,20,000", 120000.0),
        (Decimal("99.5"), 99.5),
        ("Price on request", 0.0),
        (None, 0.0),
    ])
    def test_display_price_parsing(self, value, expected):
        assert _to_float(value) == expected

    @pytest.mark.parametrize("joined, required, expected", [(1, 8, 13), (3, 8, 38), (1, 3, 33), (9, 8, 100)])
    def test_progress_rounds_halves_up(self, joined, required, expected):
        project = LiveGroupProject(title="Skyline Residency", min_buyers=required, status="live")
        tower = LiveGroupTower(tower_name="Tower A")
        unit = LiveGroupUnit(floor_number=1, unit_number="1A", price=Decimal("4500000"))

        entry = joined_group_entry(unit, tower, project, joined)

        assert entry["progressPercentage"] == expected
