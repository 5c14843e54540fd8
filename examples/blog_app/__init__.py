"""
Blog-style sample application used to tour the queryguide query API.
"""

from .demo import bootstrap_database, published_feed, run_demo, seed_sample_data
from .models import Post, PublishedManager, User
from .walkthrough import STEPS, render, run_walkthrough

__all__ = [
    "Post",
    "PublishedManager",
    "STEPS",
    "User",
    "bootstrap_database",
    "published_feed",
    "render",
    "run_demo",
    "run_walkthrough",
    "seed_sample_data",
]
