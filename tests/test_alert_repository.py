"""Unit tests for alert persistence.

Tests AlertRepository for:
- Create validation and defaults
- Owner-scoped update, toggle and delete
- Idempotent delete
- The due query per frequency tier
- The conditional, monotonic watermark update
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from jobalerts.domain.exceptions import AlertNotFoundError, AlertValidationError
from jobalerts.domain.models import Frequency
from jobalerts.persistence import AlertRepository, get_session
from jobalerts.persistence.schema import JobAlertModel

from tests.helpers.factories import AS_OF, seed_alert, seed_profile


@pytest.fixture
def owner(db):
    with get_session() as session:
        seed_profile(session, "profile-1")
        seed_profile(session, "profile-2", email="other@example.com")
    return "profile-1"


class TestCreate:
    def test_create_sets_defaults(self, owner):
        with get_session() as session:
            alert = AlertRepository(session).create(
                owner,
                {"title": "  GHL roles ", "frequency": "daily", "keywords": "GHL, GoHighLevel, ghl"},
                now=AS_OF,
            )

        assert alert.id
        assert alert.owner_id == owner
        assert alert.title == "GHL roles"
        assert alert.keywords == ["GHL", "GoHighLevel"]
        assert alert.is_active is True
        assert alert.last_sent_at is None
        assert alert.created_at == AS_OF
        assert alert.updated_at == AS_OF

    def test_create_ignores_system_fields(self, owner):
        with get_session() as session:
            alert = AlertRepository(session).create(
                owner,
                {
                    "title": "x",
                    "frequency": "weekly",
                    "is_active": False,
                    "last_sent_at": AS_OF,
                    "id": "chosen-id",
                },
            )

        assert alert.id != "chosen-id"
        assert alert.is_active is True
        assert alert.last_sent_at is None

    def test_create_round_trips_through_store(self, owner):
        with get_session() as session:
            created = AlertRepository(session).create(
                owner,
                {
                    "title": "Senior remote",
                    "frequency": "weekly",
                    "job_type": "Contract",
                    "experience_level": "Senior Level",
                    "remote_only": True,
                    "salary_min": 60000,
                    "location": "",
                },
                now=AS_OF,
            )

        with get_session() as session:
            loaded = AlertRepository(session).get(created.id)

        assert loaded == created
        assert loaded.location is None

    @pytest.mark.parametrize("title", ["", "   "])
    def test_empty_title_rejected(self, owner, title):
        with get_session() as session:
            with pytest.raises(AlertValidationError) as exc_info:
                AlertRepository(session).create(owner, {"title": title, "frequency": "daily"})

        assert "Alert name is required" in str(exc_info.value)

    @pytest.mark.parametrize("frequency", ["hourly", "", None])
    def test_unknown_frequency_rejected(self, owner, frequency):
        with get_session() as session:
            with pytest.raises(AlertValidationError):
                AlertRepository(session).create(owner, {"title": "x", "frequency": frequency})

    def test_negative_salary_rejected(self, owner):
        with get_session() as session:
            with pytest.raises(AlertValidationError):
                AlertRepository(session).create(
                    owner, {"title": "x", "frequency": "daily", "salary_min": -1}
                )

    def test_rejected_create_writes_nothing(self, owner):
        with get_session() as session:
            with pytest.raises(AlertValidationError):
                AlertRepository(session).create(owner, {"title": "", "frequency": "daily"})

        with get_session() as session:
            assert AlertRepository(session).list_for_owner(owner) == []


class TestUpdate:
    def test_update_changes_fields_and_bumps_updated_at(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner, title="Old", created_at=AS_OF - timedelta(days=1))

        with get_session() as session:
            updated = AlertRepository(session).update(
                alert.id, owner, {"title": "New", "frequency": "weekly"}, now=AS_OF
            )

        assert updated.title == "New"
        assert updated.frequency is Frequency.WEEKLY
        assert updated.updated_at == AS_OF
        assert updated.created_at == alert.created_at

        with get_session() as session:
            assert AlertRepository(session).get(alert.id) == updated

    def test_update_cannot_touch_watermark(self, owner):
        sent = AS_OF - timedelta(days=2)
        with get_session() as session:
            alert = seed_alert(session, owner, last_sent_at=sent)

        with get_session() as session:
            updated = AlertRepository(session).update(
                alert.id, owner, {"last_sent_at": None, "owner_id": "profile-2"}
            )

        assert updated.last_sent_at == sent
        assert updated.owner_id == owner

    def test_update_foreign_alert_is_not_found(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner, title="Mine")

        with get_session() as session:
            with pytest.raises(AlertNotFoundError):
                AlertRepository(session).update(alert.id, "profile-2", {"title": "Stolen"})

        with get_session() as session:
            assert AlertRepository(session).get(alert.id).title == "Mine"

    def test_update_missing_alert_is_not_found(self, owner):
        with get_session() as session:
            with pytest.raises(AlertNotFoundError):
                AlertRepository(session).update("missing", owner, {"title": "x"})

    def test_invalid_update_leaves_row_untouched(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner, title="Keep me")

        with get_session() as session:
            with pytest.raises(AlertValidationError):
                AlertRepository(session).update(alert.id, owner, {"title": " ", "salary_min": 5})

        with get_session() as session:
            stored = AlertRepository(session).get(alert.id)
        assert stored.title == "Keep me"
        assert stored.salary_min is None


class TestToggleAndList:
    def test_set_active_and_toggle(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            repo = AlertRepository(session)
            assert repo.set_active(alert.id, owner, False).is_active is False
            assert repo.toggle(alert.id, owner).is_active is True
            assert repo.toggle(alert.id, owner).is_active is False

    def test_toggle_foreign_alert_is_not_found(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            with pytest.raises(AlertNotFoundError):
                AlertRepository(session).toggle(alert.id, "profile-2")

    def test_list_for_owner_newest_first(self, owner):
        with get_session() as session:
            older = seed_alert(session, owner, title="Older", created_at=AS_OF - timedelta(days=2))
            newer = seed_alert(session, owner, title="Newer", created_at=AS_OF - timedelta(days=1))
            seed_alert(session, "profile-2", title="Someone else's")

        with get_session() as session:
            alerts = AlertRepository(session).list_for_owner(owner)

        assert [a.id for a in alerts] == [newer.id, older.id]


class TestDelete:
    def test_delete_removes_alert(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            assert AlertRepository(session).delete(alert.id, owner) is True

        with get_session() as session:
            assert AlertRepository(session).get(alert.id) is None

    def test_delete_is_idempotent(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            repo = AlertRepository(session)
            assert repo.delete(alert.id, owner) is True
            assert repo.delete(alert.id, owner) is False
            assert repo.delete("never-existed", owner) is False

    def test_delete_foreign_alert_is_noop(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            assert AlertRepository(session).delete(alert.id, "profile-2") is False

        with get_session() as session:
            assert AlertRepository(session).get(alert.id) is not None


class TestListActiveDue:
    def test_due_query_per_tier(self, owner):
        with get_session() as session:
            never_sent = seed_alert(session, owner, frequency="daily")
            sent_yesterday = seed_alert(
                session, owner, frequency="daily", last_sent_at=AS_OF - timedelta(hours=25)
            )
            seed_alert(session, owner, frequency="daily", last_sent_at=AS_OF - timedelta(hours=3))
            paused = seed_alert(session, owner, frequency="daily")
            AlertRepository(session).set_active(paused.id, owner, False)
            seed_alert(session, owner, frequency="weekly", last_sent_at=AS_OF - timedelta(days=3))
            weekly_due = seed_alert(
                session, owner, frequency="weekly", last_sent_at=AS_OF - timedelta(days=8)
            )

        with get_session() as session:
            repo = AlertRepository(session)
            daily = {a.id for a in repo.list_active_due(Frequency.DAILY, AS_OF)}
            weekly = {a.id for a in repo.list_active_due("weekly", AS_OF)}

        assert daily == {never_sent.id, sent_yesterday.id}
        assert weekly == {weekly_due.id}

    def test_instant_tier_lists_all_active_instant_alerts(self, owner):
        with get_session() as session:
            a = seed_alert(session, owner, frequency="instant", last_sent_at=AS_OF - timedelta(seconds=5))
            b = seed_alert(session, owner, frequency="instant")
            seed_alert(session, owner, frequency="daily")

        with get_session() as session:
            due = AlertRepository(session).list_active_due(Frequency.INSTANT, AS_OF)

        assert {x.id for x in due} == {a.id, b.id}

    def test_null_is_active_counts_as_active(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)
            session.execute(
                update(JobAlertModel).where(JobAlertModel.id == alert.id).values(is_active=None)
            )

        with get_session() as session:
            due = AlertRepository(session).list_active_due(Frequency.DAILY, AS_OF)

        assert [a.id for a in due] == [alert.id]
        assert due[0].is_active is True

    def test_due_query_reads_other_iso_forms(self, owner):
        with get_session() as session:
            space = seed_alert(session, owner)
            offset_due = seed_alert(session, owner)
            offset_recent = seed_alert(session, owner)
            watermarks = {
                space.id: "2025-11-09 10:00:00+00:00",
                offset_due.id: "2025-11-09T17:00:00+08:00",
                offset_recent.id: "2025-11-09T08:00:00-05:00",
            }
            for alert_id, value in watermarks.items():
                session.execute(
                    update(JobAlertModel)
                    .where(JobAlertModel.id == alert_id)
                    .values(last_sent_at=value)
                )

        with get_session() as session:
            due = AlertRepository(session).list_active_due(Frequency.DAILY, AS_OF)

        assert {a.id for a in due} == {space.id, offset_due.id}

    def test_unparseable_rows_are_skipped(self, owner):
        with get_session() as session:
            good = seed_alert(session, owner)
            bad = seed_alert(session, owner)
            session.execute(
                update(JobAlertModel).where(JobAlertModel.id == bad.id).values(job_type="Gig")
            )

        with get_session() as session:
            due = AlertRepository(session).list_active_due(Frequency.DAILY, AS_OF)

        assert [a.id for a in due] == [good.id]


class TestAdvanceLastSent:
    def test_advance_from_null(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            assert AlertRepository(session).advance_last_sent(alert.id, None, AS_OF) is True

        with get_session() as session:
            assert AlertRepository(session).get(alert.id).last_sent_at == AS_OF

    def test_stale_expected_value_loses(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)

        with get_session() as session:
            repo = AlertRepository(session)
            assert repo.advance_last_sent(alert.id, None, AS_OF) is True
            # A second dispatcher that read the alert before the first write
            assert repo.advance_last_sent(alert.id, None, AS_OF + timedelta(minutes=1)) is False

        with get_session() as session:
            assert AlertRepository(session).get(alert.id).last_sent_at == AS_OF

    def test_refuses_to_move_backwards(self, owner):
        sent = AS_OF - timedelta(hours=1)
        with get_session() as session:
            alert = seed_alert(session, owner, last_sent_at=sent)

        with get_session() as session:
            repo = AlertRepository(session)
            assert repo.advance_last_sent(alert.id, sent, sent - timedelta(days=1)) is False
            assert repo.get(alert.id).last_sent_at == sent

    def test_matches_stored_value_in_other_iso_format(self, owner):
        with get_session() as session:
            alert = seed_alert(session, owner)
            session.execute(
                update(JobAlertModel)
                .where(JobAlertModel.id == alert.id)
                .values(last_sent_at="2025-11-08T12:00:00+00:00")
            )

        with get_session() as session:
            repo = AlertRepository(session)
            expected = repo.get(alert.id).last_sent_at
            assert repo.advance_last_sent(alert.id, expected, AS_OF) is True

    def test_missing_alert(self, owner):
        with get_session() as session:
            assert AlertRepository(session).advance_last_sent("missing", None, AS_OF) is False
