from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from moviegroups.db.database import Base

class UserORM(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    memberships = relationship("GroupMemberORM", back_populates="user", passive_deletes=True)
    reviews = relationship("ReviewORM", back_populates="user", passive_deletes=True)


class GenreORM(Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)


class GroupThemeORM(Base):
    __tablename__ = "group_themes"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    theme = Column(String, nullable=False, default="default")


class GroupORM(Base):
    __tablename__ = "groups"
    __table_args__ = (
        CheckConstraint("visibility IN ('public', 'private', 'closed')", name="ck_groups_visibility"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    visibility = Column(String, nullable=False, default="public")
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    theme_id = Column(Integer, ForeignKey("group_themes.id", ondelete="SET NULL"), nullable=True)
    poster_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("UserORM")
    theme = relationship("GroupThemeORM")
    members = relationship("GroupMemberORM", back_populates="group", passive_deletes=True)
    tags = relationship("GroupTagORM", passive_deletes=True)


Index("uq_groups_lower_name", func.lower(GroupORM.name), unique=True)


class GroupMemberORM(Base):
    __tablename__ = "group_members"
    __table_args__ = (
        CheckConstraint("role IN ('owner', 'moderator', 'member', 'pending')", name="ck_group_members_role"),
    )

    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    role = Column(String, nullable=False, default="member")
    joined_at = Column(DateTime(timezone=True), server_default=func.now())

    group = relationship("GroupORM", back_populates="members")
    user = relationship("UserORM", back_populates="memberships")


class GroupTagORM(Base):
    __tablename__ = "group_tags"

    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)

    genre = relationship("GenreORM")


class MovieORM(Base):
    __tablename__ = "movies"

    # external metadata provider id
    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    original_title = Column(String)
    release_year = Column(Integer)
    poster_path = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FavoriteORM(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        CheckConstraint(
            "(type IN (1, 2) AND user_id IS NOT NULL AND group_id IS NULL) "
            "OR (type = 3 AND group_id IS NOT NULL)",
            name="ck_favorites_scope"
        ),
        Index(
            "uq_favorites_personal", "user_id", "movie_id", "type",
            unique=True,
            sqlite_where=text("group_id IS NULL"),
            postgresql_where=text("group_id IS NULL"),
        ),
        Index(
            "uq_favorites_group", "group_id", "movie_id",
            unique=True,
            sqlite_where=text("group_id IS NOT NULL"),
            postgresql_where=text("group_id IS NOT NULL"),
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), nullable=True)
    added_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    movie_id = Column(String, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    type = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    movie = relationship("MovieORM")


class ReviewORM(Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("movie_id", "user_id", name="uq_reviews_movie_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating"),
    )

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(String, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True))

    user = relationship("UserORM", back_populates="reviews")


class InteractionORM(Base):
    __tablename__ = "interactions"
    __table_args__ = (
        UniqueConstraint("target_id", "target_type", "user_id", name="uq_interactions_target_user"),
        CheckConstraint("type IN ('like', 'dislike')", name="ck_interactions_type"),
    )

    id = Column(Integer, primary_key=True)
    target_id = Column(Integer, nullable=False, index=True)
    target_type = Column(String, nullable=False, default="review")
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
