from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Literal, Union
import re

from moviegroups.domain.models import (
    Visibility, FavoriteType, parse_movie_id, User, Group, Membership, Genre, GroupTheme, Favorite, Movie, Review
)

class TokenData(BaseModel):
    user_id: Optional[int] = None


def _check_password_strength(v: str) -> str:
    if not re.search(r'[A-Z]', v):
        raise ValueError('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', v):
        raise ValueError('Password must contain at least one lowercase letter')
    if not re.search(r'[0-9]', v):
        raise ValueError('Password must contain at least one digit')
    return v


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)

    @field_validator('password')
    @classmethod
    def password_strength(cls, v):
        return _check_password_strength(v)

class UserResponse(BaseModel):
    id: int
    username: str
    email: EmailStr


class UserProfile(BaseModel):
    id: int
    username: str
    email: str
    is_admin: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserProfile":
        return cls(id=user.id, username=user.username, email=user.email, is_admin=user.is_admin)


class UserAccountResponse(UserProfile):
    """What administrators see when managing accounts."""
    is_active: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, user: User) -> "UserAccountResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            is_admin=user.is_admin,
            is_active=user.is_active,
            created_at=user.created_at
        )


class ProfileUpdate(BaseModel):
    """Changes a user makes to their own account. A new password needs the current one."""

    model_config = ConfigDict(extra='forbid')

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=8)

    @field_validator('new_password')
    @classmethod
    def password_strength(cls, v):
        return _check_password_strength(v) if v is not None else v

    @model_validator(mode='after')
    def at_least_one_change(self):
        if self.username is None and self.email is None and self.new_password is None:
            raise ValueError('Provide username, email or new_password to update')
        if self.new_password is not None and not self.current_password:
            raise ValueError('Current password is required to change password')
        return self


class AdminUserUpdate(BaseModel):
    model_config = ConfigDict(extra='forbid')

    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None
    is_admin: Optional[bool] = None

    @model_validator(mode='after')
    def at_least_one_change(self):
        if all(getattr(self, field) is None for field in ('username', 'email', 'is_active', 'is_admin')):
            raise ValueError('At least one field must be provided for update')
        return self


def _clean_tags(tags: Optional[List[int]]) -> Optional[List[int]]:
    if tags is None:
        return None
    if any(tag <= 0 for tag in tags):
        raise ValueError('All tags must be valid positive integers')
    # dedupe, keep order
    return list(dict.fromkeys(tags))


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    visibility: Visibility = Visibility.PUBLIC
    theme_id: Optional[int] = None
    poster_url: Optional[str] = None
    tags: List[int] = []

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if not v.strip():
            raise ValueError('Group name is required')
        return v.strip()

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)


class GroupUpdate(BaseModel):
    """Partial update of a group. Unknown fields are rejected, explicit nulls clear nullable fields."""

    model_config = ConfigDict(extra='forbid')

    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    visibility: Optional[Visibility] = None
    theme_id: Optional[int] = None
    poster_url: Optional[str] = None
    tags: Optional[List[int]] = None

    @field_validator('name')
    @classmethod
    def name_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError('Group name cannot be empty')
        return v.strip() if v is not None else v

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, v):
        return _clean_tags(v)

    @model_validator(mode='after')
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError('At least one field must be provided for update')
        if 'visibility' in self.model_fields_set and self.visibility is None:
            raise ValueError('Visibility must be public, private, or closed')
        if 'name' in self.model_fields_set and self.name is None:
            raise ValueError('Group name cannot be empty')
        if 'tags' in self.model_fields_set and self.tags is None:
            raise ValueError('Tags must be an array of numbers')
        return self

    def changes(self) -> dict:
        """Column updates only; tags are handled separately."""
        return {
            field: getattr(self, field)
            for field in ('name', 'description', 'visibility', 'theme_id', 'poster_url')
            if field in self.model_fields_set
        }


class AddMemberRequest(BaseModel):
    user_id: int = Field(..., alias='userId')
    role: Literal['member', 'moderator'] = 'member'

    model_config = ConfigDict(populate_by_name=True)


class RoleUpdateRequest(BaseModel):
    role: Literal['member', 'moderator']


class MemberResponse(BaseModel):
    id: int
    username: Optional[str] = None
    role: str
    joined_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, membership: Membership) -> "MemberResponse":
        return cls(
            id=membership.user_id,
            username=membership.username,
            role=membership.role.value,
            joined_at=membership.joined_at
        )


class GenreResponse(BaseModel):
    id: int
    name: str

    @classmethod
    def from_domain(cls, genre: Genre) -> "GenreResponse":
        return cls(id=genre.id, name=genre.name)


class ThemeResponse(BaseModel):
    id: int
    name: str
    theme: str

    @classmethod
    def from_domain(cls, theme: GroupTheme) -> "ThemeResponse":
        return cls(id=theme.id, name=theme.name, theme=theme.theme)


class GroupResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    visibility: str
    owner_id: int
    owner_name: Optional[str] = None
    theme_id: Optional[int] = None
    poster_url: Optional[str] = None
    created_at: Optional[datetime] = None
    member_count: int = 0
    genre_tags: List[int] = []

    @classmethod
    def from_domain(cls, group: Group) -> "GroupResponse":
        return cls(
            id=group.id,
            name=group.name,
            description=group.description,
            visibility=group.visibility.value,
            owner_id=group.owner_id,
            owner_name=group.owner_name,
            theme_id=group.theme_id,
            poster_url=group.poster_url,
            created_at=group.created_at,
            member_count=group.member_count,
            genre_tags=sorted(group.genre_ids)
        )


class GroupDetailResponse(GroupResponse):
    members: List[MemberResponse] = []
    genres: List[GenreResponse] = []

    @classmethod
    def from_domain(cls, group: Group) -> "GroupDetailResponse":
        base = GroupResponse.from_domain(group).model_dump()
        return cls(
            **base,
            members=[MemberResponse.from_domain(m) for m in group.members],
            genres=[GenreResponse.from_domain(g) for g in group.genres]
        )


class FavoriteCreate(BaseModel):
    movie_id: Union[str, int]
    type: int
    group_id: Optional[int] = None

    @field_validator('movie_id')
    @classmethod
    def movie_id_as_string(cls, v):
        return parse_movie_id(v)

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v not in (t.value for t in FavoriteType):
            raise ValueError('type must be 1 (watchlist), 2 (favorites), or 3 (group_favorites)')
        return v


class MovieResponse(BaseModel):
    id: str
    title: str
    original_title: Optional[str] = None
    release_year: Optional[int] = None
    poster_path: Optional[str] = None

    @classmethod
    def from_domain(cls, movie: Movie) -> "MovieResponse":
        return cls(
            id=movie.id,
            title=movie.title,
            original_title=movie.original_title,
            release_year=movie.release_year,
            poster_path=movie.poster_path
        )


class FavoriteResponse(BaseModel):
    movie_id: str
    type: int
    created_at: datetime
    user_id: Optional[int] = None
    group_id: Optional[int] = None
    title: Optional[str] = None
    release_year: Optional[int] = None
    poster_path: Optional[str] = None

    @classmethod
    def from_domain(cls, favorite: Favorite) -> "FavoriteResponse":
        movie = favorite.movie
        return cls(
            movie_id=favorite.movie_id,
            type=favorite.type.value,
            created_at=favorite.created_at,
            user_id=favorite.user_id,
            group_id=favorite.group_id,
            title=movie.title if movie else None,
            release_year=movie.release_year if movie else None,
            poster_path=movie.poster_path if movie else None
        )


class GroupRef(BaseModel):
    id: int
    name: str


class FavoriteStatus(BaseModel):
    watchlist: bool = False
    favorites: bool = False
    groups: List[GroupRef] = []


class ReviewCreate(BaseModel):
    movie_id: Union[str, int]
    content: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)

    @field_validator('movie_id')
    @classmethod
    def movie_id_as_string(cls, v):
        return parse_movie_id(v)


class ReviewUpdate(BaseModel):
    content: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)


class InteractionRequest(BaseModel):
    # null clears the caller's interaction
    type: Optional[Literal['like', 'dislike']] = None


class ReviewResponse(BaseModel):
    id: int
    movie_id: str
    user_id: int
    username: Optional[str] = None
    content: Optional[str] = None
    rating: int
    likes: int = 0
    dislikes: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, review: Review) -> "ReviewResponse":
        return cls(
            id=review.id,
            movie_id=review.movie_id,
            user_id=review.user_id,
            username=review.username,
            content=review.content,
            rating=review.rating,
            likes=review.likes,
            dislikes=review.dislikes,
            created_at=review.created_at,
            updated_at=review.updated_at
        )
