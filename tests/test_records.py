"""
Tests for the generic record model and the entity models built on it.
"""
import math
from datetime import datetime, timedelta

import pytest

from wfn24.errors import InvalidFieldError, QueryError
from wfn24.records import (
    ArticleModel,
    CategoryModel,
    LeagueModel,
    MatchModel,
    PlayerModel,
    RecordSchema,
    TeamModel,
    UserModel,
)
from wfn24.records.users import verify_password
from wfn24.utils.helpers import utcnow
from wfn24.models import Category


class CountingExecutor:
    """Wraps a gateway and counts the statements sent through it."""

    def __init__(self, db):
        self.db = db
        self.statements = 0

    def execute(self, statement, parameters=None):
        self.statements += 1
        return self.db.execute(statement, parameters)

    def transaction(self):
        return self.db.transaction()


def _seed_categories(db, count):
    model = CategoryModel(db)
    for i in range(count):
        model.create({"name": f"Section {i:02d}", "sort_order": i})
    return model


# =============================================================================
# Writable fields / sensitive fields
# =============================================================================

class TestFieldIsolation:
    """Only writable fields reach the table; sensitive ones never leave it."""

    def test_create_ignores_non_writable_fields(self, db):
        articles = ArticleModel(db)
        article_id = articles.create({"title": "X", "content": "Y", "role": "admin", "id": 999})
        article = articles.find(article_id)
        assert article_id != 999
        assert "role" not in article
        assert article["title"] == "X"

    def test_update_with_only_non_writable_fields_changes_nothing(self, db):
        articles = ArticleModel(db)
        article_id = articles.create({"title": "X", "content": "Y"})
        before = articles.find(article_id)

        assert articles.update(article_id, {"id": 5, "created_at": datetime(2000, 1, 1), "role": "admin"}) is False
        assert articles.find(article_id) == before

    def test_user_cannot_be_created_with_explicit_id(self, db):
        users = UserModel(db)
        user_id = users.create({"username": "kop", "email": "kop@wfn24.com", "password": "anfield1892", "id": 42})
        assert user_id != 42
        assert users.find(42) is None

    def test_password_hash_never_returned(self, db, admin_user):
        users = UserModel(db)
        returned = [
            users.find(admin_user["id"]),
            users.find_by("email", admin_user["email"]),
            *users.where("role", "admin"),
            *users.all(),
            *users.search("admin").items,
            *users.paginate().items,
            *users.admins(),
        ]
        assert returned
        for record in returned:
            assert "password_hash" not in record

    def test_password_is_stored_hashed(self, db, admin_user):
        row = db.execute("SELECT password_hash FROM users WHERE id = :id", {"id": admin_user["id"]}).first()
        assert row["password_hash"].startswith("$2")
        assert verify_password("admin-pass-123", row["password_hash"])

    def test_schema_rejects_unknown_columns(self):
        with pytest.raises(InvalidFieldError):
            RecordSchema(table=Category.__table__, writable_fields=("name", "colour"))


# =============================================================================
# Reads, updates and deletes
# =============================================================================

class TestCrud:

    def test_find_by_unknown_field_raises_before_querying(self, db):
        counting = CountingExecutor(db)
        with pytest.raises(InvalidFieldError) as exc_info:
            ArticleModel(counting).find_by("nonexistent_field", "x")
        assert counting.statements == 0
        assert exc_info.value.field == "nonexistent_field"

    def test_where_unknown_field_raises(self, db):
        with pytest.raises(InvalidFieldError):
            TeamModel(db).where("colour", "red")

    def test_update_missing_record_returns_false(self, db):
        assert CategoryModel(db).update(999999, {"name": "Ghost"}) is False

    def test_update_returns_true_and_persists(self, db):
        teams = TeamModel(db)
        team_id = teams.create({"name": "Arsenal", "stadium": "Highbury"})
        assert teams.update(team_id, {"stadium": "Emirates Stadium"}) is True
        assert teams.find(team_id)["stadium"] == "Emirates Stadium"

    def test_delete(self, db):
        teams = TeamModel(db)
        team_id = teams.create({"name": "Arsenal"})
        assert teams.delete(team_id) is True
        assert teams.delete(team_id) is False
        assert teams.find(team_id) is None

    def test_find_missing_returns_none(self, db):
        assert PlayerModel(db).find(12345) is None

    def test_count_with_query(self, db):
        teams = TeamModel(db)
        for name in ("Arsenal", "Aston Villa", "Chelsea"):
            teams.create({"name": name})
        assert teams.count() == 3
        assert teams.count("a v") == 0
        assert teams.count("aston") == 1


# =============================================================================
# Pagination and search
# =============================================================================

class TestPagination:

    def test_third_page_of_twenty_five(self, db):
        model = _seed_categories(db, 25)
        page = model.paginate(page=3, per_page=10)
        assert len(page.items) == 5
        assert page.total_count == 25
        assert page.last_page == 3
        assert page.from_index == 21
        assert page.to_index == 25

    @pytest.mark.parametrize("total,per_page", [(0, 10), (7, 3), (30, 10), (11, 20)])
    def test_page_sizes_add_up(self, db, total, per_page):
        model = _seed_categories(db, total)
        last_page = math.ceil(total / per_page)
        assert model.paginate(1, per_page).last_page == last_page

        for page in range(1, last_page + 1):
            expected = min(per_page, total - (page - 1) * per_page)
            assert len(model.paginate(page, per_page).items) == expected
        assert model.paginate(last_page + 1, per_page).items == []

    def test_page_below_one_is_clamped(self, db):
        model = _seed_categories(db, 3)
        page = model.paginate(page=0, per_page=2)
        assert page.page == 1
        assert len(page.items) == 2

    def test_per_page_capped_at_maximum(self, db):
        model = _seed_categories(db, 3)
        assert model.paginate(1, 10_000).per_page == 100

    def test_non_positive_per_page_rejected(self, db):
        with pytest.raises(ValueError):
            CategoryModel(db).paginate(1, 0)

    def test_to_dict_shape(self, db):
        model = _seed_categories(db, 3)
        result = model.paginate(1, 2).to_dict()
        assert result["total"] == 3
        assert result["current_page"] == 1
        assert result["last_page"] == 2
        assert result["from"] == 1
        assert result["to"] == 2
        assert len(result["data"]) == 2

    def test_default_order_is_applied(self, db):
        model = CategoryModel(db)
        model.create({"name": "Zeta", "sort_order": 0})
        model.create({"name": "Alpha", "sort_order": 1})
        model.create({"name": "Beta", "sort_order": 0})
        assert [c["name"] for c in model.paginate().items] == ["Beta", "Zeta", "Alpha"]

    @pytest.mark.parametrize("model_cls", [TeamModel, PlayerModel, LeagueModel, CategoryModel])
    def test_default_order_ends_with_primary_key(self, db, model_cls):
        model = model_cls(db)
        assert str(model.default_order()[-1]) == f"{model.table.name}.id ASC"

    def test_duplicate_names_split_exactly_across_pages(self, db):
        teams = TeamModel(db)
        ids = [teams.create({"name": "United"}) for _ in range(7)]
        ids.append(teams.create({"name": "Albion"}))

        pages = [teams.paginate(page, 3).items for page in range(1, 4)]
        collected = [t["id"] for items in pages for t in items]
        assert collected == [ids[-1]] + ids[:-1]
        assert len(set(collected)) == teams.count()

    def test_search_is_case_insensitive_across_fields(self, db):
        players = PlayerModel(db)
        players.create({"name": "Mohamed Salah", "nationality": "Egypt"})
        players.create({"name": "Bukayo Saka", "nationality": "England"})
        players.create({"name": "Erling Haaland", "nationality": "Norway"})

        assert [p["name"] for p in players.search("SALAH").items] == ["Mohamed Salah"]
        assert {p["name"] for p in players.search("eng").items} == {"Bukayo Saka"}
        assert players.search("").total_count == 3

    def test_search_treats_wildcards_literally(self, db):
        teams = TeamModel(db)
        teams.create({"name": "100% Football"})
        teams.create({"name": "Arsenal"})
        assert [t["name"] for t in teams.search("%").items] == ["100% Football"]
        assert teams.search("_").items == []


# =============================================================================
# Entity behaviour
# =============================================================================

class TestArticles:

    def test_slug_generated_and_deduplicated(self, db):
        articles = ArticleModel(db)
        first = articles.find(articles.create({"title": "Derby Day!", "content": "..."}))
        second = articles.find(articles.create({"title": "Derby day", "content": "..."}))
        third = articles.find(articles.create({"title": "Derby Day", "content": "..."}))
        assert [first["slug"], second["slug"], third["slug"]] == ["derby-day", "derby-day-1", "derby-day-2"]

    def test_defaults_to_draft(self, db):
        articles = ArticleModel(db)
        article = articles.find(articles.create({"title": "Draft", "content": "..."}))
        assert article["status"] == "draft"
        assert article["published_at"] is None

    def test_publishing_sets_published_at(self, db):
        articles = ArticleModel(db)
        article_id = articles.create({"title": "Report", "content": "..."})
        articles.update(article_id, {"status": "published"})
        assert articles.find(article_id)["published_at"] is not None

    def test_invalid_status_rejected(self, db):
        with pytest.raises(ValueError):
            ArticleModel(db).create({"title": "X", "content": "Y", "status": "live"})

    def test_published_listing_excludes_drafts(self, db):
        articles = ArticleModel(db)
        category_id = CategoryModel(db).create({"name": "Match Reports"})
        articles.create({"title": "Out", "content": "...", "status": "published", "category_id": category_id})
        articles.create({"title": "Hidden", "content": "..."})

        page = articles.published()
        assert [a["title"] for a in page.items] == ["Out"]
        assert page.items[0]["category_name"] == "Match Reports"
        assert articles.by_category(category_id).total_count == 1

    def test_search_published(self, db):
        articles = ArticleModel(db)
        articles.create({"title": "Salah signs", "content": "...", "status": "published"})
        articles.create({"title": "Salah rumour", "content": "...", "status": "draft"})
        assert [a["title"] for a in articles.search_published("salah").items] == ["Salah signs"]

    def test_increment_view_count(self, db):
        articles = ArticleModel(db)
        article_id = articles.create({"title": "X", "content": "Y"})
        articles.increment_view_count(article_id)
        articles.increment_view_count(article_id)
        assert articles.find(article_id)["view_count"] == 2

    def test_duplicate_explicit_slug_gets_suffix(self, db):
        categories = CategoryModel(db)
        categories.create({"name": "News", "slug": "news"})
        second = categories.find(categories.create({"name": "More News", "slug": "news"}))
        assert second["slug"] == "news-1"

    def test_empty_slug_on_update_keeps_current_slug(self, db):
        articles = ArticleModel(db)
        article_id = articles.create({"title": "Derby day", "content": "..."})
        assert articles.update(article_id, {"slug": ""}) is False
        assert articles.update(article_id, {"slug": None, "excerpt": "Red half"}) is True
        assert articles.find(article_id)["slug"] == "derby-day"

        categories = CategoryModel(db)
        category_id = categories.create({"name": "Transfers"})
        categories.update(category_id, {"slug": "", "icon": "swap"})
        assert categories.find(category_id)["slug"] == "transfers"
        assert categories.get_by_slug("transfers")["icon"] == "swap"


class TestUsers:

    def test_authenticate(self, db, admin_user):
        users = UserModel(db)
        user = users.authenticate("ADMIN@wfn24.com ", "admin-pass-123")
        assert user["id"] == admin_user["id"]
        assert user["last_login"] is not None
        assert users.authenticate("admin@wfn24.com", "wrong") is None
        assert users.authenticate("nobody@wfn24.com", "admin-pass-123") is None

    def test_inactive_user_cannot_authenticate(self, db, reader_user):
        users = UserModel(db)
        users.set_active(reader_user["id"], False)
        assert users.authenticate("reader@wfn24.com", "reader-pass-123") is None

    def test_defaults_and_role_validation(self, db, reader_user):
        assert reader_user["role"] == "user"
        assert reader_user["is_active"] is True
        with pytest.raises(ValueError):
            UserModel(db).update(reader_user["id"], {"role": "owner"})

    def test_duplicate_email_is_integrity_error(self, db, reader_user):
        with pytest.raises(QueryError) as exc_info:
            UserModel(db).create({"username": "other", "email": "reader@wfn24.com", "password": "whatever1"})
        assert exc_info.value.is_integrity_error

    def test_password_change_rehashes(self, db, reader_user):
        users = UserModel(db)
        users.update(reader_user["id"], {"password": "brand-new-pass"})
        assert users.authenticate("reader@wfn24.com", "brand-new-pass") is not None
        assert users.authenticate("reader@wfn24.com", "reader-pass-123") is None

    def test_change_password_checks_current(self, db, reader_user):
        users = UserModel(db)
        assert users.change_password(reader_user["id"], "wrong-pass", "brand-new-pass") is False
        assert users.change_password(999, "reader-pass-123", "brand-new-pass") is False
        assert users.change_password(reader_user["id"], "reader-pass-123", "brand-new-pass") is True
        assert users.authenticate("reader@wfn24.com", "brand-new-pass") is not None


class TestMatches:

    def test_status_normalized_and_live_flag(self, db):
        matches = MatchModel(db)
        match_id = matches.create({"match_date": datetime(2024, 9, 14, 15), "status": "LIVE"})
        match = matches.find(match_id)
        assert match["status"] == "live"
        assert match["is_live"] is True

        matches.update(match_id, {"status": "finished"})
        assert matches.find(match_id)["is_live"] is False

    def test_invalid_status_rejected(self, db):
        with pytest.raises(ValueError):
            MatchModel(db).create({"match_date": datetime(2024, 9, 14), "status": "halftime"})

    def test_details_join_team_and_league_names(self, db):
        league_id = LeagueModel(db).create({"name": "Premier League", "api_league_id": 39})
        teams = TeamModel(db)
        home = teams.create({"name": "Liverpool", "league_id": league_id})
        away = teams.create({"name": "Everton", "league_id": league_id})
        matches = MatchModel(db)
        match_id = matches.create({
            "match_date": datetime(2024, 9, 14, 15),
            "home_team_id": home,
            "away_team_id": away,
            "league_id": league_id,
        })

        match = matches.with_details(match_id)
        assert match["home_team_name"] == "Liverpool"
        assert match["away_team_name"] == "Everton"
        assert match["league_name"] == "Premier League"
        assert [m["id"] for m in matches.by_team(away)] == [match_id]

    def test_upcoming_and_recent(self, db):
        matches = MatchModel(db)
        now = utcnow()
        upcoming_id = matches.create({"match_date": now + timedelta(days=2)})
        finished_id = matches.create({"match_date": now - timedelta(days=2), "status": "finished"})
        assert [m["id"] for m in matches.upcoming()] == [upcoming_id]
        assert [m["id"] for m in matches.recent()] == [finished_id]

    def test_events_and_statistics(self, db):
        matches = MatchModel(db)
        match_id = matches.create({
            "match_date": datetime(2024, 9, 14, 15),
            "home_possession": 58,
            "away_possession": 42,
            "statistics": {"shots": [14, 6]},
        })
        player_id = PlayerModel(db).create({"name": "Mohamed Salah"})
        matches.add_event(match_id, "goal", minute=67, player_id=player_id)
        matches.add_event(match_id, "yellow_card", minute=12)

        events = matches.events(match_id)
        assert [e["minute"] for e in events] == [12, 67]
        assert events[1]["player_name"] == "Mohamed Salah"

        stats = matches.statistics(match_id)
        assert stats["home_possession"] == 58
        assert stats["shots"] == [14, 6]
        assert matches.statistics(999) is None

    def test_update_live_score(self, db):
        matches = MatchModel(db)
        match_id = matches.create({"match_date": datetime(2024, 9, 14, 15), "status": "live"})
        assert matches.update_live_score(match_id, 2, 1) is True
        match = matches.find(match_id)
        assert (match["home_score"], match["away_score"]) == (2, 1)


class TestLeagueTables:

    @pytest.fixture
    def league(self, db):
        league_id = LeagueModel(db).create({"name": "Premier League", "priority": 100})
        teams = TeamModel(db)
        ids = {
            name: teams.create({"name": name, "league_id": league_id})
            for name in ("Arsenal", "Chelsea", "Liverpool", "Spurs")
        }
        matches = MatchModel(db)

        def result(home, away, home_score, away_score, status="finished"):
            return matches.create({
                "match_date": datetime(2024, 9, 1),
                "league_id": league_id,
                "home_team_id": ids[home],
                "away_team_id": ids[away],
                "home_score": home_score,
                "away_score": away_score,
                "status": status,
            })

        result("Liverpool", "Chelsea", 3, 0)
        result("Arsenal", "Chelsea", 1, 1)
        result("Chelsea", "Arsenal", 0, 2)
        result("Liverpool", "Arsenal", 5, 5, status="scheduled")
        return league_id, ids

    def test_standings_order_and_points(self, db, league):
        league_id, ids = league
        table = LeagueModel(db).standings(league_id)

        assert [row["team_name"] for row in table] == ["Arsenal", "Liverpool", "Chelsea", "Spurs"]
        arsenal = table[0]
        assert (arsenal["played"], arsenal["won"], arsenal["drawn"], arsenal["lost"]) == (2, 1, 1, 0)
        assert arsenal["points"] == 4
        assert arsenal["goal_difference"] == 2
        assert table[2]["points"] == 1
        assert table[3]["played"] == 0
        assert [row["position"] for row in table] == [1, 2, 3, 4]

    def test_top_scorers(self, db, league):
        league_id, ids = league
        players = PlayerModel(db)
        salah = players.create({"name": "Mohamed Salah", "team_id": ids["Liverpool"]})
        saka = players.create({"name": "Bukayo Saka", "team_id": ids["Arsenal"]})
        matches = MatchModel(db)
        match_id = matches.where("league_id", league_id)[0]["id"]
        matches.add_event(match_id, "goal", 10, salah)
        matches.add_event(match_id, "goal", 50, salah)
        matches.add_event(match_id, "goal", 70, saka)
        matches.add_event(match_id, "assist", 70, salah)

        scorers = LeagueModel(db).top_scorers(league_id)
        assert [(s["name"], s["goals"], s["assists"]) for s in scorers] == [
            ("Mohamed Salah", 2, 1),
            ("Bukayo Saka", 1, 0),
        ]
        assert scorers[0]["team_name"] == "Liverpool"

    def test_with_details_counts(self, db, league):
        league_id, _ = league
        details = LeagueModel(db).with_details(league_id)
        assert details["team_count"] == 4
        assert details["match_count"] == 4
