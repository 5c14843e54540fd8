"""
Runnable tour of the query API over the blog models.

Each step pairs the snippet a reader would type with a callable doing the
same thing. :func:`run_walkthrough` executes the steps in order against a
fresh database and records what each one returned and which SQL it ran::

    python -m examples.blog_app.walkthrough
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from queryguide import Q
from queryguide.db import use
from queryguide.exceptions import MultipleObjectsReturned, ObjectDoesNotExist

from .demo import bootstrap_database, seed_sample_data
from .models import Post, User

State = Dict[str, Any]


@dataclass(frozen=True)
class Step:
    title: str
    snippet: str
    action: Callable[[State], Any]


@dataclass
class StepResult:
    title: str
    snippet: str
    output: str
    queries: List[str] = field(default_factory=list)


STEPS: List[Step] = []


def step(title: str, snippet: str) -> Callable[[Callable[[State], Any]], Callable[[State], Any]]:
    def decorator(func: Callable[[State], Any]) -> Callable[[State], Any]:
        STEPS.append(Step(title=title, snippet=snippet.strip(), action=func))
        return func

    return decorator


# Creating objects ---------------------------------------------------------
@step("Retrieve a single object", 'user = User.objects.get(username="admin")')
def _get_user(state: State) -> Any:
    state["user"] = User.objects.get(username="admin")
    return state["user"]


@step(
    "Create and save an object",
    """
post = Post(title="Another post", slug="another-post", body="Post body.", author=user)
post.save()
""",
)
def _create_post(state: State) -> Any:
    post = Post(title="Another post", slug="another-post", body="Post body.", author=state["user"])
    post.save()
    state["post"] = post
    return post


@step(
    "Update an object with save()",
    """
post.title = "New title"
post.save()
""",
)
def _update_post(state: State) -> Any:
    post = state["post"]
    post.title = "New title"
    post.save()
    return post


@step(
    "Create in one step",
    'Post.objects.create(title="One more post", slug="one-more-post", body="Post body.", author=user)',
)
def _create_in_one_step(state: State) -> Any:
    return Post.objects.create(
        title="One more post", slug="one-more-post", body="Post body.", author=state["user"]
    )


@step("Get or create", 'user, created = User.objects.get_or_create(username="user2")')
def _get_or_create(state: State) -> Any:
    return User.objects.get_or_create(username="user2")


@step("Get or create an existing object", 'User.objects.get_or_create(username="admin")')
def _get_existing(state: State) -> Any:
    return User.objects.get_or_create(username="admin")


@step(
    "Update or create",
    """
Post.objects.update_or_create(
    slug="one-more-post", defaults={"title": "One more post, revised"}
)
""",
)
def _update_or_create(state: State) -> Any:
    return Post.objects.update_or_create(
        slug="one-more-post", defaults={"title": "One more post, revised"}
    )


# Retrieving objects -------------------------------------------------------
@step("Retrieve all objects", "Post.objects.all()")
def _all_posts(state: State) -> Any:
    return Post.objects.all()


@step("Filter objects", 'Post.objects.filter(title="Who was Django Reinhardt?")')
def _filter(state: State) -> Any:
    return Post.objects.filter(title="Who was Django Reinhardt?")


@step("Field lookup: in", "Post.objects.filter(id__in=[1, 3])")
def _lookup_in(state: State) -> Any:
    return Post.objects.filter(id__in=[1, 3])


@step("Field lookup: icontains", 'Post.objects.filter(title__icontains="django")')
def _lookup_icontains(state: State) -> Any:
    return Post.objects.filter(title__icontains="django")


@step("Field lookup: date transform", "Post.objects.filter(publish__year=2025)")
def _lookup_year(state: State) -> Any:
    return Post.objects.filter(publish__year=2025)


@step("Lookup across a relation", 'Post.objects.filter(author__username="admin")')
def _lookup_related(state: State) -> Any:
    return Post.objects.filter(author__username="admin")


@step(
    "Chaining filters",
    'Post.objects.filter(publish__year=2025).filter(author__username="admin")',
)
def _chained(state: State) -> Any:
    return Post.objects.filter(publish__year=2025).filter(author__username="admin")


@step(
    "Exclude objects",
    'Post.objects.filter(publish__year=2025).exclude(title__startswith="Why")',
)
def _exclude(state: State) -> Any:
    return Post.objects.filter(publish__year=2025).exclude(title__startswith="Why")


@step("Order objects", 'Post.objects.order_by("title")')
def _order(state: State) -> Any:
    return Post.objects.order_by("title")


@step("Order descending", 'Post.objects.order_by("-title")')
def _order_desc(state: State) -> Any:
    return Post.objects.order_by("-title")


@step("Order by several fields", 'Post.objects.order_by("author", "title")')
def _order_many(state: State) -> Any:
    return Post.objects.order_by("author", "title")


@step("Limit results", "Post.objects.all()[:3]")
def _limit(state: State) -> Any:
    return Post.objects.all()[:3]


@step("Offset and limit", "Post.objects.all()[2:4]")
def _offset(state: State) -> Any:
    return Post.objects.all()[2:4]


@step("Index a QuerySet", 'Post.objects.order_by("title")[0]')
def _index(state: State) -> Any:
    return Post.objects.order_by("title")[0]


@step("Slice with a step", 'Post.objects.order_by("title")[::2]')
def _step_slice(state: State) -> Any:
    return Post.objects.order_by("title")[::2]


@step(
    "First and last objects",
    'Post.objects.order_by("title").first(), Post.objects.order_by("title").last()',
)
def _first_last(state: State) -> Any:
    return Post.objects.order_by("title").first(), Post.objects.order_by("title").last()


@step("Count objects", "Post.objects.filter(id__lt=3).count()")
def _count(state: State) -> Any:
    return Post.objects.filter(id__lt=3).count()


@step("Check existence", 'Post.objects.filter(title__startswith="Why").exists()')
def _exists(state: State) -> Any:
    return Post.objects.filter(title__startswith="Why").exists()


@step("An empty QuerySet", "Post.objects.none()")
def _none(state: State) -> Any:
    return Post.objects.none()


@step(
    "Complex lookups with Q",
    """
starts_who = Q(title__istartswith="who")
starts_why = Q(title__istartswith="why")
Post.objects.filter(starts_who | starts_why)
""",
)
def _q_objects(state: State) -> Any:
    starts_who = Q(title__istartswith="who")
    starts_why = Q(title__istartswith="why")
    return Post.objects.filter(starts_who | starts_why)


# Evaluation ---------------------------------------------------------------
@step(
    "QuerySets are lazy",
    """
posts = Post.objects.filter(title__icontains="post")
print(posts.query)
""",
)
def _lazy(state: State) -> Any:
    posts = Post.objects.filter(title__icontains="post")
    state["posts"] = posts
    return str(posts.query)


@step("SQL and parameters", 'Post.objects.filter(title__startswith="Who").to_sql()')
def _to_sql(state: State) -> Any:
    return Post.objects.filter(title__startswith="Who").to_sql()


@step("Evaluating a QuerySet", "[post.title for post in posts]")
def _evaluate(state: State) -> Any:
    return [post.title for post in state["posts"]]


@step("Evaluated results are cached", "len(posts)")
def _cached(state: State) -> Any:
    return len(state["posts"])


# Errors -------------------------------------------------------------------
@step("No matching object", "Post.objects.get(id=999)")
def _does_not_exist(state: State) -> Any:
    return Post.objects.get(id=999)


@step("More than one matching object", 'Post.objects.get(author__username="admin")')
def _multiple(state: State) -> Any:
    return Post.objects.get(author__username="admin")


# Managers -----------------------------------------------------------------
@step("Custom manager", 'Post.published.filter(title__startswith="Who")')
def _custom_manager(state: State) -> Any:
    return Post.published.filter(title__startswith="Who")


@step("Reverse relation manager", "user.blog_posts.all()")
def _reverse(state: State) -> Any:
    return state["user"].blog_posts.all()


@step("Follow a foreign key in one query", 'Post.objects.select_related("author")[:2]')
def _select_related(state: State) -> Any:
    return [(post.title, post.author.username) for post in Post.objects.select_related("author")[:2]]


# Writing in bulk ----------------------------------------------------------
@step(
    "Update many rows",
    'Post.objects.filter(slug="one-more-post").update(status=Post.Status.PUBLISHED)',
)
def _bulk_update(state: State) -> Any:
    return Post.objects.filter(slug="one-more-post").update(status=Post.Status.PUBLISHED)


@step("Delete an object", "post.delete()")
def _delete(state: State) -> Any:
    return state["post"].delete()


@step("Delete many rows", "Post.objects.filter(status=Post.Status.DRAFT).delete()")
def _bulk_delete(state: State) -> Any:
    return Post.objects.filter(status=Post.Status.DRAFT).delete()


def run_walkthrough(dsn: str = "sqlite:///:memory:") -> List[StepResult]:
    """
    Execute every step against a freshly seeded database.
    """

    database = bootstrap_database(dsn)
    results: List[StepResult] = []
    state: State = {}
    try:
        seed_sample_data(database)
        with use(database):
            for current in STEPS:
                with database.capture_queries() as captured:
                    try:
                        output = repr(current.action(state))
                    except (ObjectDoesNotExist, MultipleObjectsReturned) as exc:
                        output = f"{type(exc).__qualname__}: {exc}"
                results.append(
                    StepResult(
                        title=current.title,
                        snippet=current.snippet,
                        output=output,
                        queries=[str(query) for query in captured],
                    )
                )
    finally:
        database.close()
    return results


def render(results: List[StepResult]) -> str:
    blocks: List[str] = []
    for number, result in enumerate(results, start=1):
        lines = [f"{number}. {result.title}"]
        lines.extend(f">>> {line}" for line in result.snippet.splitlines())
        lines.append(result.output)
        for query in result.queries:
            lines.append(f"    SQL: {query}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


if __name__ == "__main__":
    print(render(run_walkthrough()))
