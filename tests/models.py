"""
Sample models and repositories used by the test suite.

- Author: plain model with a fillable whitelist
- Tag: plain model
- Post: soft-deletable, linked to tags through the post_tags pivot
"""

from typing import List, Optional

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from baserepo.models import Base, BaseModel, BelongsToMany, SoftDeletable
from baserepo.repositories import BaseRepository


post_tags = Table(
    "post_tags",
    Base.metadata,
    Column("post_id", ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
    Column("added_by", String(50), nullable=True),
)


class Author(BaseModel, Base):
    __tablename__ = "authors"
    __fillable__ = frozenset({"name", "email"})

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), unique=True, nullable=True)


class Tag(BaseModel, Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    label: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class Post(SoftDeletable, BaseModel, Base):
    __tablename__ = "posts"
    __relations__ = {"tags": BelongsToMany(post_tags, "post_id", "tag_id")}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rank: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    author_id: Mapped[Optional[int]] = mapped_column(ForeignKey("authors.id"), nullable=True)

    tags: Mapped[List[Tag]] = relationship(secondary=post_tags, viewonly=True)


class AuthorRepository(BaseRepository[Author]):
    model = Author


class TagRepository(BaseRepository[Tag]):
    model = Tag


class PostRepository(BaseRepository[Post]):
    model = Post
