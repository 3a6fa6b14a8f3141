"""
Tests for store.py and database.py - SQLite record store.
"""

import pytest

from facultyrank import store as store_module
from facultyrank.database import Application, get_session, init_database
from facultyrank.errors import NotFoundError, UpstreamUnavailableError, ValidationError
from facultyrank.store import RecordStore


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "test.db"

        init_database(db_path)

        assert db_path.exists()

    def test_init_is_idempotent(self, db_path, make_application):
        make_application()
        init_database(db_path)

        session = get_session(db_path)
        assert session.query(Application).count() == 1
        session.close()


class TestReads:
    """Test record store reads."""

    def test_get_application(self, store, make_application):
        app_id = make_application(first_name="Ravi", university="IIT Delhi")

        application = store.get_application(app_id)

        assert application["id"] == app_id
        assert application["first_name"] == "Ravi"
        assert application["status"] == "pending"
        assert isinstance(application["created_at"], str)

    def test_get_missing_application(self, store):
        with pytest.raises(NotFoundError, match="Application not found: 999"):
            store.get_application(999)

    def test_fetch_for_application_ordered_by_id(self, store, make_application):
        app_id = make_application(research=[
            {"institution": "IIT Bombay"},
            {"institution": "IISc"},
        ])

        rows = store.fetch_for_application("research_experiences", app_id)

        assert [r["institution"] for r in rows] == ["IIT Bombay", "IISc"]

    def test_fetch_for_ids(self, store, make_application):
        first = make_application(teaching=[{"post": "Lecturer"}])
        second = make_application(teaching=[{"post": "Professor"}, {"post": "Dean"}])
        make_application(teaching=[{"post": "Not requested"}])

        rows = store.fetch_for_ids("teaching_experiences", [second, first])

        assert [(r["application_id"], r["post"]) for r in rows] == [
            (first, "Lecturer"),
            (second, "Professor"),
            (second, "Dean"),
        ]

    def test_fetch_for_no_ids_skips_query(self, store):
        before = store_module.logger.get_metrics()["store_queries"].get("teaching_experiences", 0)

        assert store.fetch_for_ids("teaching_experiences", []) == []

        after = store_module.logger.get_metrics()["store_queries"].get("teaching_experiences", 0)
        assert after == before

    def test_unknown_table(self, store):
        with pytest.raises(ValueError, match="Unknown table"):
            store.fetch_for_ids("users", [1])

    def test_research_info(self, store, make_application):
        with_info = make_application(research_info={"scopus_general_papers": 4})
        without_info = make_application()

        assert store.get_research_info(with_info)["scopus_general_papers"] == 4
        assert store.get_research_info(without_info) is None

    def test_top_ranked(self, store, make_application):
        """Scored applications only, best first, ties by id."""
        low = make_application(score=40.0)
        high = make_application(score=90.0)
        tie = make_application(score=40.0)
        make_application()  # never scored

        ranked = store.top_ranked(limit=10)

        assert [r["id"] for r in ranked] == [high, low, tie]

    def test_top_ranked_filters_and_limit(self, store, make_application):
        cse = make_application(department="CSE", score=70.0)
        make_application(department="ECE", score=95.0)
        make_application(department="CSE", position="Professor", score=80.0)

        assert [r["id"] for r in store.top_ranked(department="CSE", position="Assistant Professor")] == [cse]
        assert len(store.top_ranked(limit=2)) == 2

    def test_missing_tables_raise_unavailable(self, tmp_path):
        """Store failures surface as UpstreamUnavailableError."""
        broken = RecordStore.from_path(tmp_path / "no_tables.db")

        with pytest.raises(UpstreamUnavailableError):
            broken.get_application(1)


class TestWrites:
    """Test prediction persistence and status updates."""

    @pytest.fixture
    def prediction(self):
        return {
            "score": 82.5,
            "confidence": 0.7,
            "category": "good",
            "model_metadata": {"model_name": "faculty_recruitment_predictor", "model_version": "1.0.0"},
        }

    def test_save_prediction(self, store, make_application, prediction):
        app_id = make_application()

        result_id = store.save_prediction(app_id, prediction, {"education_level": "phd"})

        application = store.get_application(app_id)
        assert application["score"] == 82.5
        assert application["category"] == "good"

        history = store.list_predictions(app_id)
        assert len(history) == 1
        assert history[0]["id"] == result_id
        assert history[0]["features_used"] == {"education_level": "phd"}
        assert store.prediction_scores() == [{"prediction_score": 82.5, "confidence_level": 0.7}]

    def test_list_predictions_newest_first(self, store, make_application, prediction):
        app_id = make_application()
        first = store.save_prediction(app_id, prediction, {})
        second = store.save_prediction(app_id, {**prediction, "score": 60.0, "category": "average"}, {})

        history = store.list_predictions(app_id)

        assert [h["id"] for h in history] == [second, first]
        assert store.get_application(app_id)["score"] == 60.0

    def test_save_prediction_missing_application(self, store, prediction):
        with pytest.raises(NotFoundError):
            store.save_prediction(404, prediction, {})

    def test_update_status(self, store, make_application):
        app_id = make_application()

        updated = store.update_status(app_id, "shortlisted")

        assert updated["status"] == "shortlisted"
        assert store.get_application(app_id)["status"] == "shortlisted"

    def test_update_status_invalid(self, store, make_application):
        app_id = make_application()

        with pytest.raises(ValidationError, match="Invalid status 'hired'"):
            store.update_status(app_id, "hired")

        assert store.get_application(app_id)["status"] == "pending"

    def test_update_status_missing_application(self, store):
        with pytest.raises(NotFoundError):
            store.update_status(404, "rejected")
