"""
Pydantic schemas for API request/response models
Request bodies are validated here, then projected with
model_dump(exclude_unset=True) before reaching the record models.
"""
from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

ArticleStatus = Literal["draft", "published", "archived"]
MatchStatus = Literal["scheduled", "live", "finished", "postponed", "cancelled"]
UserRole = Literal["user", "admin", "moderator"]


class InputModel(BaseModel):
    """Base for request bodies: unknown keys are dropped."""

    class Config:
        extra = "ignore"

    def to_fields(self) -> dict:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


# ===== RESPONSE ENVELOPE =====

class ApiResponse(BaseModel):
    """Admin JSON envelope"""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    message: Optional[str] = None


# ===== ARTICLE SCHEMAS =====

class ArticleCreate(InputModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    slug: Optional[str] = Field(default=None, max_length=255)
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category_id: Optional[int] = None
    author_name: Optional[str] = None
    status: Optional[ArticleStatus] = None
    published_at: Optional[datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class ArticleUpdate(InputModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=255)
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category_id: Optional[int] = None
    author_name: Optional[str] = None
    status: Optional[ArticleStatus] = None
    published_at: Optional[datetime] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None


# ===== CATEGORY SCHEMAS =====

class CategoryCreate(InputModel):
    name: str = Field(min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class CategoryUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


# ===== LEAGUE SCHEMAS =====

class LeagueCreate(InputModel):
    name: str = Field(min_length=1, max_length=255)
    api_league_id: Optional[int] = None
    country: Optional[str] = None
    logo_url: Optional[str] = None
    type: Optional[str] = None
    season: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class LeagueUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    api_league_id: Optional[int] = None
    country: Optional[str] = None
    logo_url: Optional[str] = None
    type: Optional[str] = None
    season: Optional[str] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None


# ===== TEAM SCHEMAS =====

class TeamCreate(InputModel):
    name: str = Field(min_length=1, max_length=255)
    api_team_id: Optional[int] = None
    short_name: Optional[str] = Field(default=None, max_length=50)
    country: Optional[str] = None
    founded_year: Optional[int] = None
    logo_url: Optional[str] = None
    stadium: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    league_id: Optional[int] = None
    is_active: Optional[bool] = None


class TeamUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    api_team_id: Optional[int] = None
    short_name: Optional[str] = Field(default=None, max_length=50)
    country: Optional[str] = None
    founded_year: Optional[int] = None
    logo_url: Optional[str] = None
    stadium: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=0)
    league_id: Optional[int] = None
    is_active: Optional[bool] = None


# ===== PLAYER SCHEMAS =====

class PlayerCreate(InputModel):
    name: str = Field(min_length=1, max_length=255)
    api_player_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    nationality: Optional[str] = None
    position: Optional[str] = None
    height: Optional[int] = None
    weight: Optional[int] = None
    photo_url: Optional[str] = None
    team_id: Optional[int] = None
    jersey_number: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class PlayerUpdate(InputModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    api_player_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0)
    nationality: Optional[str] = None
    position: Optional[str] = None
    height: Optional[int] = None
    weight: Optional[int] = None
    photo_url: Optional[str] = None
    team_id: Optional[int] = None
    jersey_number: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


# ===== MATCH SCHEMAS =====

class MatchCreate(InputModel):
    match_date: datetime
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    league_id: Optional[int] = None
    api_match_id: Optional[int] = None
    season: Optional[str] = None
    round: Optional[str] = None
    status: Optional[MatchStatus] = None
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)
    home_possession: Optional[int] = Field(default=None, ge=0, le=100)
    away_possession: Optional[int] = Field(default=None, ge=0, le=100)
    venue: Optional[str] = None
    referee: Optional[str] = None
    attendance: Optional[int] = Field(default=None, ge=0)


class MatchUpdate(InputModel):
    match_date: Optional[datetime] = None
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    league_id: Optional[int] = None
    api_match_id: Optional[int] = None
    season: Optional[str] = None
    round: Optional[str] = None
    status: Optional[MatchStatus] = None
    home_score: Optional[int] = Field(default=None, ge=0)
    away_score: Optional[int] = Field(default=None, ge=0)
    home_possession: Optional[int] = Field(default=None, ge=0, le=100)
    away_possession: Optional[int] = Field(default=None, ge=0, le=100)
    venue: Optional[str] = None
    referee: Optional[str] = None
    attendance: Optional[int] = Field(default=None, ge=0)


class ScoreUpdate(InputModel):
    """Live score push from the admin match center"""
    home_score: int = Field(ge=0)
    away_score: int = Field(ge=0)
    minute: Optional[int] = Field(default=None, ge=0)
    status: Optional[MatchStatus] = None


# ===== USER SCHEMAS =====

class UserCreate(InputModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None


class UserUpdate(InputModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN, max_length=255)
    password: Optional[str] = Field(default=None, min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[UserRole] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: Optional[bool] = None


class UserStatusUpdate(InputModel):
    is_active: bool


class RegisterRequest(InputModel):
    """Public sign-up; role is always 'user'"""
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(min_length=8)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class ProfileUpdate(InputModel):
    """Self-service profile edit; account fields stay admin-only"""
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None
    avatar_url: Optional[str] = None


class PasswordChange(InputModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)
