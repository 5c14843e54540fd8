"""
Utility helpers for running the queryguide blog example end-to-end.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from queryguide.config import Settings
from queryguide.db import Database, use

from .models import Post, User

SAMPLE_USERS = [
    {"username": "admin", "email": "admin@example.com", "first_name": "Ada", "last_name": "Lane"},
    {"username": "ana", "email": "ana@example.com", "first_name": "Ana", "last_name": "Silva"},
]

# (author, title, slug, status, publish)
SAMPLE_POSTS = [
    ("admin", "Who was Django Reinhardt?", "who-was-django-reinhardt", Post.Status.PUBLISHED, datetime(2025, 1, 10, 9, 0)),
    ("admin", "Why query lazily?", "why-query-lazily", Post.Status.PUBLISHED, datetime(2025, 1, 15, 18, 30)),
    ("ana", "Notes on field lookups", "notes-on-field-lookups", Post.Status.PUBLISHED, datetime(2025, 2, 1, 12, 0)),
    ("ana", "Custom managers", "custom-managers", Post.Status.DRAFT, datetime(2025, 2, 10, 8, 15)),
]


def bootstrap_database(dsn: str = "sqlite:///:memory:", *, settings: Settings | None = None) -> Database:
    """
    Open a SQLite database and ensure the blog schema exists.
    """

    database = Database(dsn, settings=settings or Settings())
    database.create_tables(User, Post)
    return database


def seed_sample_data(database: Database) -> Dict[str, List[Dict[str, Any]]]:
    """
    Populate users and posts so the example queries have something to find.
    """

    with use(database), database.atomic():
        users = {values["username"]: User.objects.create(**values) for values in SAMPLE_USERS}
        posts = [
            Post.objects.create(
                title=title,
                slug=slug,
                author=users[username],
                body=f"{title} A short post body.",
                status=status,
                publish=publish.replace(tzinfo=timezone.utc),
            )
            for username, title, slug, status, publish in SAMPLE_POSTS
        ]
    return {
        "users": [user.to_dict() for user in users.values()],
        "posts": [post.to_dict() for post in posts],
    }


def published_feed(database: Database, limit: int = 5) -> List[Dict[str, Any]]:
    """
    Newest published posts with their author, loaded with one JOIN.
    """

    posts = Post.published.using(database).select_related("author")[:limit]
    return [
        {
            "id": post.id,
            "title": post.title,
            "slug": post.slug,
            "author": post.author.username,
            "publish": post.publish,
            "status": post.status,
        }
        for post in posts
    ]


def run_demo(dsn: str = "sqlite:///:memory:") -> List[Dict[str, Any]]:
    """
    Bootstrap the database, seed data, and return the published feed.
    """

    database = bootstrap_database(dsn)
    try:
        seed_sample_data(database)
        return published_feed(database)
    finally:
        database.close()


if __name__ == "__main__":
    for entry in run_demo():
        print(f"{entry['publish']:%Y-%m-%d} {entry['title']} by {entry['author']}")
