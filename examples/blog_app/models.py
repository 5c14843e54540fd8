"""
Data models for the queryguide blog example.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from queryguide.core import (
    BooleanField,
    DateTimeField,
    ForeignKey,
    Index,
    Manager,
    Model,
    SlugField,
    StringField,
    TextField,
)


def now() -> datetime:
    return datetime.now(timezone.utc)


class PublishedManager(Manager):
    """Only posts whose status is published."""

    def get_queryset(self):
        return super().get_queryset().filter(status=Post.Status.PUBLISHED)


class User(Model):
    username = StringField(max_length=150, unique=True)
    email = StringField(max_length=254, default="")
    first_name = StringField(max_length=150, default="")
    last_name = StringField(max_length=150, default="")
    is_active = BooleanField(default=True)
    date_joined = DateTimeField(default=now)

    class Meta:
        app_label = "blog"

    def __str__(self) -> str:
        return self.username


class Post(Model):
    class Status(str, Enum):
        DRAFT = "DF"
        PUBLISHED = "PB"

    title = StringField(max_length=250)
    slug = SlugField(max_length=250)
    author = ForeignKey(User, related_name="blog_posts")
    body = TextField()
    publish = DateTimeField(default=now)
    created = DateTimeField(auto_now_add=True)
    updated = DateTimeField(auto_now=True)
    status = StringField(max_length=2, choices=list(Status), default=Status.DRAFT)

    objects = Manager()
    published = PublishedManager()

    class Meta:
        app_label = "blog"
        ordering = ["-publish"]
        indexes = [Index(fields=["-publish"])]

    def __str__(self) -> str:
        return self.title
