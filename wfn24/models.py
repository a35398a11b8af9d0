"""
Database models for WFN24
SQLAlchemy declarative tables for users, editorial content, football data and the API cache
"""
from datetime import datetime
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Match lifecycle; stored lowercase
MATCH_STATUSES = ("scheduled", "live", "finished", "postponed", "cancelled")
USER_ROLES = ("user", "admin", "moderator")
ARTICLE_STATUSES = ("draft", "published", "archived")


class User(Base):
    """
    User entity - readers and CMS staff
    Passwords are stored only as bcrypt hashes
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(String(20), nullable=False, default="user")
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    preferences = Column(JSON, nullable=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


class Category(Base):
    """Category entity - news sections (Transfer News, Match Reports...)"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(7), nullable=True, default="#e41e5b")
    icon = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Category(id={self.id}, slug='{self.slug}')>"


class League(Base):
    """
    League entity - competitions, optionally linked to an API-Football league id
    Higher priority sorts first; priority > 0 marks a major league
    """
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_league_id = Column(Integer, unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    country = Column(String(100), nullable=True)
    logo_url = Column(String(500), nullable=True)
    type = Column(String(50), nullable=True, default="League")
    season = Column(String(20), nullable=True)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<League(id={self.id}, name='{self.name}')>"


class Team(Base):
    """Team entity - clubs and national sides"""
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_team_id = Column(Integer, unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    short_name = Column(String(50), nullable=True)
    country = Column(String(100), nullable=True)
    founded_year = Column(Integer, nullable=True)
    logo_url = Column(String(500), nullable=True)
    stadium = Column(String(255), nullable=True)
    capacity = Column(Integer, nullable=True)
    league_id = Column(Integer, ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Team(id={self.id}, name='{self.name}')>"


class Player(Base):
    """Player entity - squad members, optionally linked to a team"""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_player_id = Column(Integer, unique=True, nullable=True)
    name = Column(String(255), nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    age = Column(Integer, nullable=True)
    nationality = Column(String(100), nullable=True)
    position = Column(String(50), nullable=True)
    height = Column(Integer, nullable=True)
    weight = Column(Integer, nullable=True)
    photo_url = Column(String(500), nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    jersey_number = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Player(id={self.id}, name='{self.name}', team_id={self.team_id})>"


class Match(Base):
    """
    Match entity - fixtures and results
    is_live mirrors status == 'live'
    """
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    api_match_id = Column(Integer, unique=True, nullable=True)
    home_team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    away_team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    league_id = Column(Integer, ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True)
    season = Column(String(20), nullable=True)
    round = Column(String(100), nullable=True)
    match_date = Column(DateTime, nullable=False, index=True)
    status = Column(String(50), nullable=False, default="scheduled", index=True)
    home_score = Column(Integer, nullable=False, default=0)
    away_score = Column(Integer, nullable=False, default=0)
    home_possession = Column(Integer, nullable=True)
    away_possession = Column(Integer, nullable=True)
    venue = Column(String(255), nullable=True)
    referee = Column(String(255), nullable=True)
    attendance = Column(Integer, nullable=True)
    statistics = Column(JSON, nullable=True)
    is_live = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Match(id={self.id}, status='{self.status}', score={self.home_score}-{self.away_score})>"


class MatchEvent(Base):
    """
    Match event - goals, assists, cards and substitutions
    Source for the top scorers aggregate
    """
    __tablename__ = "match_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id", ondelete="SET NULL"), nullable=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)
    event_type = Column(String(30), nullable=False)  # goal/assist/yellow_card/red_card/substitution
    minute = Column(Integer, nullable=True)
    detail = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<MatchEvent(match_id={self.match_id}, type='{self.event_type}', minute={self.minute})>"


class NewsArticle(Base):
    """News article entity - the CMS content"""
    __tablename__ = "news_articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=False)
    excerpt = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    featured_image = Column(String(500), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    author_name = Column(String(255), nullable=True)
    tags = Column(JSON, nullable=True)
    meta_title = Column(String(255), nullable=True)
    meta_description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="draft", index=True)
    is_featured = Column(Boolean, nullable=False, default=False)
    published_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<NewsArticle(id={self.id}, slug='{self.slug}', status='{self.status}')>"


class ApiCacheEntry(Base):
    """
    Cached upstream payload
    A row is served only while expires_at is in the future
    """
    __tablename__ = "api_cache"

    cache_key = Column(String(255), primary_key=True)
    data = Column(Text, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ApiCacheEntry(key='{self.cache_key}', expires_at={self.expires_at})>"
