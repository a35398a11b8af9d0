"""
Public read-only JSON API for the site pages.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from config.settings import settings
from wfn24.api_client import FootballApiClient
from wfn24.db import Database
from wfn24.deps import get_api_client, get_db
from wfn24.records import (
    ArticleModel,
    CategoryModel,
    LeagueModel,
    MatchModel,
    PlayerModel,
    TeamModel,
)

logger = logging.getLogger("public")

router = APIRouter(tags=["public"])

# Version tracking
APP_NAME = "WFN24"
APP_VERSION = "v1.0.0"


@router.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


@router.get("/version")
def version_info():
    """Version information endpoint."""
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "full": f"{APP_NAME} {APP_VERSION}",
    }


@router.get("/cache/stats")
def cache_stats(client: FootballApiClient = Depends(get_api_client)):
    """Get cache statistics."""
    return client.cache_stats()


# ===== HOME =====

@router.get("/api/home")
def home(request: Request, db: Database = Depends(get_db)):
    """
    Home page payload: featured and latest news, local live/upcoming matches,
    major leagues, and upstream live matches when the API is configured.
    """
    articles = ArticleModel(db)
    matches = MatchModel(db)
    payload = {
        "featured_articles": articles.featured(5),
        "latest_articles": articles.published(1, 10).items,
        "live_matches": matches.live(),
        "upcoming_matches": matches.upcoming(10),
        "recent_results": matches.recent(5),
        "leagues": LeagueModel(db).major(),
        "categories": CategoryModel(db).active(),
    }

    client: Optional[FootballApiClient] = request.app.state.api_client
    payload["external_live_matches"] = client.get_live_matches() if client else []
    return payload


# ===== ARTICLES =====

@router.get("/api/articles")
def list_articles(
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
):
    return ArticleModel(db).published(page, per_page).to_dict()


@router.get("/api/articles/{slug}")
def get_article(slug: str, db: Database = Depends(get_db)):
    """Published article by slug; counts a view."""
    articles = ArticleModel(db)
    article = articles.get_by_slug(slug)
    if not article or article["status"] != "published":
        raise HTTPException(status_code=404, detail="Article not found")
    articles.increment_view_count(article["id"])
    article["view_count"] += 1
    return article


@router.get("/api/categories")
def list_categories(db: Database = Depends(get_db)):
    return {"categories": CategoryModel(db).active()}


@router.get("/api/categories/{slug}/articles")
def category_articles(
    slug: str,
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
):
    category = CategoryModel(db).get_by_slug(slug)
    if not category or not category["is_active"]:
        raise HTTPException(status_code=404, detail="Category not found")
    result = ArticleModel(db).by_category(category["id"], page, per_page).to_dict()
    result["category"] = category
    return result


# ===== LEAGUES =====

@router.get("/api/leagues")
def list_leagues(db: Database = Depends(get_db)):
    return {"leagues": LeagueModel(db).active()}


@router.get("/api/leagues/{league_id}")
def get_league(league_id: int, db: Database = Depends(get_db)):
    """League detail with teams, local standings, recent matches and top scorers."""
    leagues = LeagueModel(db)
    league = leagues.with_details(league_id)
    if not league:
        raise HTTPException(status_code=404, detail="League not found")
    return {
        "league": league,
        "teams": TeamModel(db).by_league(league_id),
        "standings": leagues.standings(league_id),
        "top_scorers": leagues.top_scorers(league_id, 10),
        "matches": MatchModel(db).by_league(league_id, 1, 10).to_dict(),
    }


@router.get("/api/leagues/{league_id}/fixtures")
def league_fixtures(
    league_id: int,
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
):
    if not LeagueModel(db).find(league_id):
        raise HTTPException(status_code=404, detail="League not found")
    return MatchModel(db).by_league(league_id, page, per_page).to_dict()


@router.get("/api/leagues/{league_id}/standings")
def league_standings(
    league_id: int,
    request: Request,
    source: str = Query(default="local", pattern="^(local|api)$"),
    season: int = Query(default=settings.current_season),
    db: Database = Depends(get_db),
):
    """
    League table.

    source=local aggregates finished matches in the database; source=api
    asks API-Football (league must carry an api_league_id).
    """
    league = LeagueModel(db).find(league_id)
    if not league:
        raise HTTPException(status_code=404, detail="League not found")

    if source == "api":
        client = get_api_client(request)
        if not league.get("api_league_id"):
            raise HTTPException(status_code=400, detail="League is not linked to API-Football")
        standings = client.get_standings(league["api_league_id"], season)
        return {"league_id": league_id, "source": "api", "season": season, "standings": standings}

    return {"league_id": league_id, "source": "local", "standings": LeagueModel(db).standings(league_id)}


# ===== MATCHES =====

@router.get("/api/matches/live")
def live_matches(db: Database = Depends(get_db)):
    return {"matches": MatchModel(db).live()}


@router.get("/api/matches/{match_id}")
def get_match(match_id: int, db: Database = Depends(get_db)):
    matches = MatchModel(db)
    match = matches.with_details(match_id)
    if not match:
        raise HTTPException(status_code=404, detail="Match not found")
    return {
        "match": match,
        "events": matches.events(match_id),
        "statistics": matches.statistics(match_id),
    }


# ===== TEAMS / PLAYERS =====

@router.get("/api/teams/{team_id}")
def get_team(team_id: int, db: Database = Depends(get_db)):
    team = TeamModel(db).with_details(team_id)
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return {
        "team": team,
        "players": PlayerModel(db).by_team(team_id),
        "matches": MatchModel(db).by_team(team_id, 10),
    }


@router.get("/api/players/{player_id}")
def get_player(player_id: int, db: Database = Depends(get_db)):
    player = PlayerModel(db).with_details(player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


# ===== SEARCH =====

@router.get("/api/search")
def search(
    q: str = Query(default="", max_length=200),
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
    db: Database = Depends(get_db),
):
    """Search published articles, teams, players and leagues."""
    q = q.strip()
    if not q:
        return {"query": q, "articles": {"data": [], "total": 0}, "teams": [], "players": [], "leagues": []}
    return {
        "query": q,
        "articles": ArticleModel(db).search_published(q, page, per_page).to_dict(),
        "teams": TeamModel(db).search(q, 1, 5).items,
        "players": PlayerModel(db).search(q, 1, 5).items,
        "leagues": LeagueModel(db).search(q, 1, 5).items,
    }
