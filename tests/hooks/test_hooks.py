import pytest

from queryguide.config import Settings
from queryguide.core import IntegerField, Model, StringField
from queryguide.db import Database, use
from queryguide.hooks import hooks


@pytest.fixture(autouse=True)
def clear_hooks():
    hooks.clear()
    yield
    hooks.clear()


def make_database():
    database = Database("sqlite:///:memory:", settings=Settings())
    database.create_tables(Sample, Other)
    return database


class Sample(Model):
    name = StringField()
    age = IntegerField(default=0)


class Other(Model):
    name = StringField()


def test_save_hooks_fire_in_order_with_created_flag():
    events = []

    for event_name in ["pre_save", "post_save"]:
        def handler(inst, event=event_name, **ctx):
            events.append((event, inst.name, ctx["created"]))

        hooks.register(event_name, handler)

    database = make_database()
    with use(database):
        sample = Sample.objects.create(name="Alice", age=21)
        sample.age = 22
        sample.save()

    assert events == [
        ("pre_save", "Alice", True),
        ("post_save", "Alice", True),
        ("pre_save", "Alice", False),
        ("post_save", "Alice", False),
    ]
    database.close()


def test_hooks_receive_database_context():
    seen = []
    hooks.register("post_save", lambda instance, **context: seen.append(context["database"]))
    database = make_database()
    with use(database):
        Sample.objects.create(name="Bob")
    assert seen == [database]
    database.close()


def test_model_specific_hook_on_delete():
    fired = []

    def before_delete(instance, **context):
        fired.append(("before", instance.name))

    def after_delete(instance, **context):
        fired.append(("after", instance.name))

    Sample.register_hook("pre_delete", before_delete)
    Sample.register_hook("post_delete", after_delete)

    database = make_database()
    with use(database):
        sample = Sample.objects.create(name="Bob", age=30)
        Other.objects.create(name="Carol").delete()
        Sample.objects.get(pk=sample.pk).delete()

    assert fired == [("before", "Bob"), ("after", "Bob")]
    database.close()


def test_pre_save_hook_can_modify_instance():
    def uppercase(instance, **context):
        instance.name = instance.name.upper()

    Sample.register_hook("pre_save", uppercase)
    database = make_database()
    with use(database):
        Sample.objects.create(name="dora")
        assert Sample.objects.get().name == "DORA"
    database.close()


def test_unknown_event_is_rejected():
    with pytest.raises(ValueError):
        hooks.register("after_commit", lambda instance, **context: None)
