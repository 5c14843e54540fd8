import pytest

from queryguide.adapters import IntegrityError
from queryguide.config import Settings
from queryguide.core import ForeignKey, IntegerField, Model, StringField
from queryguide.db import Database, use
from queryguide.exceptions import FieldError
from queryguide.query import Q


class Writer(Model):
    name = StringField(unique=True)
    email = StringField(default="")


class Story(Model):
    title = StringField()
    writer = ForeignKey(Writer, related_name="stories")
    words = IntegerField(default=0)

    class Meta:
        ordering = ["title"]


def make_database(tmp_path=None):
    url = f"sqlite:///{tmp_path / 'stories.db'}" if tmp_path else "sqlite:///:memory:"
    database = Database(url, settings=Settings())
    database.create_tables(Writer, Story)
    return database


def seed(database):
    with use(database):
        alice = Writer.objects.create(name="alice", email="alice@example.com")
        bob = Writer.objects.create(name="bob")
        Story.objects.create(title="Beta", writer=alice, words=300)
        Story.objects.create(title="Alpha", writer=alice, words=1200)
        Story.objects.create(title="Gamma", writer=bob, words=50)
        Story.objects.create(title="Delta", writer=alice, words=800)
    return alice, bob


def test_iteration_fetches_instances_once(tmp_path):
    database = make_database(tmp_path)
    seed(database)
    with use(database):
        stories = Story.objects.all()
        with database.capture_queries() as queries:
            assert [story.title for story in stories] == ["Alpha", "Beta", "Delta", "Gamma"]
            assert len(stories) == 4
            assert bool(stories) is True
            assert stories[0].title == "Alpha"
            assert stories.count() == 4
            assert stories.exists() is True
        assert len(queries) == 1
    database.close()


def test_loaded_values_are_converted():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        story = Story.objects.get(title="Alpha")
    assert story.words == 1200
    assert story.writer_id == alice.pk
    assert story._database is database
    database.close()


def test_get_raises_does_not_exist():
    database = make_database()
    seed(database)
    with use(database):
        with pytest.raises(Story.DoesNotExist, match="^Story matching query does not exist.$"):
            Story.objects.get(title="Omega")
    database.close()


def test_get_raises_multiple_objects_returned():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        with pytest.raises(Story.MultipleObjectsReturned) as excinfo:
            Story.objects.get(writer=alice)
    assert str(excinfo.value) == "get() returned more than one Story -- it returned 3!"
    database.close()


def test_get_caps_the_number_of_fetched_rows():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        for number in range(25):
            Story.objects.create(title=f"Story {number}", writer=alice)
        with database.capture_queries() as queries:
            with pytest.raises(Story.MultipleObjectsReturned, match="it returned more than 20!"):
                Story.objects.get(writer=alice)
    assert queries[0].sql.endswith("LIMIT 21")
    assert "ORDER BY" not in queries[0].sql
    database.close()


def test_get_accepts_q_objects():
    database = make_database()
    seed(database)
    with use(database):
        story = Story.objects.get(Q(title="Gamma") | Q(title="Omega"))
    assert story.title == "Gamma"
    database.close()


def test_create_inserts_and_assigns_primary_key():
    database = make_database()
    with use(database):
        writer = Writer.objects.create(name="carol")
        assert writer.pk == 1
        assert Writer.objects.get(pk=1).name == "carol"
    database.close()


def test_unique_violation_raises_integrity_error():
    database = make_database()
    with use(database):
        Writer.objects.create(name="carol")
        with pytest.raises(IntegrityError):
            Writer.objects.create(name="carol")
        assert Writer.objects.count() == 1
    database.close()


def test_get_or_create():
    database = make_database()
    with use(database):
        writer, created = Writer.objects.get_or_create(name="carol", defaults={"email": "c@example.com"})
        assert created is True
        assert writer.email == "c@example.com"

        again, created = Writer.objects.get_or_create(name="carol", defaults={"email": "other"})
        assert created is False
        assert again.pk == writer.pk
        assert again.email == "c@example.com"
    database.close()


def test_get_or_create_ignores_lookup_suffixes_when_creating():
    database = make_database()
    with use(database):
        writer, created = Writer.objects.get_or_create(name__iexact="dave", defaults={"name": "Dave"})
        assert created is True and writer.name == "Dave"
        same, created = Writer.objects.get_or_create(name__iexact="DAVE", defaults={"name": "Dave"})
        assert created is False and same.pk == writer.pk
    database.close()


def test_update_or_create():
    database = make_database()
    seed(database)
    with use(database):
        writer, created = Writer.objects.update_or_create(name="bob", defaults={"email": "bob@example.com"})
        assert created is False
        assert Writer.objects.get(name="bob").email == "bob@example.com"

        writer, created = Writer.objects.update_or_create(name="erin", defaults={"email": "e@example.com"})
        assert created is True
        assert Writer.objects.count() == 3
    database.close()


def test_save_updates_existing_row():
    database = make_database()
    seed(database)
    with use(database):
        story = Story.objects.get(title="Alpha")
        story.title = "Alpha (revised)"
        with database.capture_queries() as queries:
            story.save()
        assert queries[0].sql.startswith('UPDATE "story" SET')
        assert Story.objects.count() == 4
        assert Story.objects.filter(title="Alpha (revised)").exists()
    database.close()


def test_save_with_update_fields_writes_only_those_columns():
    database = make_database()
    seed(database)
    with use(database):
        story = Story.objects.get(title="Alpha")
        story.title = "Changed"
        story.words = 1
        with database.capture_queries() as queries:
            story.save(update_fields=["words"])
        assert queries[0].sql == 'UPDATE "story" SET "words" = ? WHERE "id" = ?'
        story.refresh_from_db()
        assert story.title == "Alpha"
        assert story.words == 1

        with pytest.raises(FieldError):
            story.save(update_fields=["nickname"])
    database.close()


def test_save_with_update_fields_on_missing_row_raises():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        ghost = Story(id=999, title="Ghost", writer=alice)
        with pytest.raises(Story.DoesNotExist, match="did not affect any rows"):
            ghost.save(update_fields=["title"])
    database.close()


def test_save_with_unknown_primary_key_falls_back_to_insert():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        story = Story(id=50, title="Epsilon", writer=alice)
        story.save()
        assert Story.objects.get(pk=50).title == "Epsilon"
    database.close()


def test_count_exists_and_none():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        assert Story.objects.filter(writer=alice).count() == 3
        assert Story.objects.filter(words__gt=5000).exists() is False
        with database.capture_queries() as queries:
            empty = Story.objects.none()
            assert list(empty) == []
            assert empty.count() == 0
            assert empty.exists() is False
        assert queries == []
    database.close()


def test_count_of_slice():
    database = make_database()
    seed(database)
    with use(database):
        assert Story.objects.all()[1:3].count() == 2
        assert Story.objects.all()[3:].count() == 1
    database.close()


def test_first_and_last():
    database = make_database()
    seed(database)
    with use(database):
        assert Story.objects.first().title == "Alpha"
        assert Story.objects.last().title == "Gamma"
        assert Story.objects.order_by().first().title == "Beta"
        assert Story.objects.order_by("-words").first().title == "Alpha"
        assert Story.objects.filter(title="Omega").first() is None
    database.close()


def test_indexing_and_slicing():
    database = make_database()
    seed(database)
    with use(database):
        assert Story.objects.all()[1].title == "Beta"
        assert [story.title for story in Story.objects.all()[1:3]] == ["Beta", "Delta"]
        assert [story.title for story in Story.objects.all()[::2]] == ["Alpha", "Delta"]
        with pytest.raises(IndexError):
            Story.objects.all()[10]
    database.close()


def test_repr_truncates_long_results():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        assert repr(Story.objects.filter(title="Gamma")) == "<QuerySet [<Story: Story object (3)>]>"
        for number in range(25):
            Story.objects.create(title=f"Story {number:02d}", writer=alice)
        rendered = repr(Story.objects.all())
    assert rendered.startswith("<QuerySet [<Story: Story object (2)>, ")
    assert rendered.endswith("'...(remaining elements truncated)...']>")
    assert rendered.count("<Story:") == 20
    database.close()


def test_queryset_update_returns_row_count():
    database = make_database()
    seed(database)
    with use(database):
        changed = Story.objects.filter(writer__name="alice").update(words=10)
        assert changed == 3
        assert sorted(story.words for story in Story.objects.all()) == [10, 10, 10, 50]
        with pytest.raises(ValueError):
            Story.objects.update(words="many")
        with pytest.raises(TypeError):
            Story.objects.all()[:2].update(words=1)
    database.close()


def test_update_does_not_touch_cached_instances():
    database = make_database()
    seed(database)
    with use(database):
        story = Story.objects.get(title="Gamma")
        Story.objects.filter(pk=story.pk).update(title="Gamma II")
        assert story.title == "Gamma"
        story.refresh_from_db()
        assert story.title == "Gamma II"
    database.close()


def test_select_related_loads_relation_in_one_query():
    database = make_database()
    seed(database)
    with use(database):
        with database.capture_queries() as queries:
            names = [story.writer.name for story in Story.objects.select_related("writer")]
        assert names == ["alice", "alice", "alice", "bob"]
        assert len(queries) == 1

        with database.capture_queries() as queries:
            names = [story.writer.name for story in Story.objects.all()]
        assert len(queries) == 5
    database.close()


def test_reverse_relation_filters_by_parent():
    database = make_database()
    alice, bob = seed(database)
    with use(database):
        assert [story.title for story in alice.stories.all()] == ["Alpha", "Beta", "Delta"]
        assert bob.stories.count() == 1
    database.close()


def test_using_binds_queryset_to_database():
    database = make_database()
    seed(database)
    assert Story.objects.using(database).count() == 4
    database.close()


def test_save_with_update_fields_requires_saved_instance():
    database = make_database()
    alice, _ = seed(database)
    with use(database):
        draft = Story(title="Draft", writer=alice)
        with pytest.raises(ValueError, match="unsaved instance"):
            draft.save(update_fields=["title"])
        assert draft.pk is None
        assert Story.objects.count() == 4
    database.close()


def test_manager_reverse_and_update_proxies():
    database = make_database()
    seed(database)
    with use(database):
        assert [story.title for story in Story.objects.reverse()] == ["Gamma", "Delta", "Beta", "Alpha"]
        assert Story.objects.update(words=1) == 4
        assert Story.objects.filter(words=1).count() == 4
    database.close()
