"""
Naming helpers shared by the model metaclass and the schema builder.
"""

import re


_FIRST_CAP_RE = re.compile("(.)([A-Z][a-z]+)")
_ALL_CAP_RE = re.compile("([a-z0-9])([A-Z])")


def camel_to_snake(name: str) -> str:
    """
    Convert ``BlogPost`` style class names into ``blog_post``.
    """
    step1 = _FIRST_CAP_RE.sub(r"\1_\2", name)
    return _ALL_CAP_RE.sub(r"\1_\2", step1).lower()


def default_table_name(model_name: str, app_label: str | None) -> str:
    snake = camel_to_snake(model_name)
    if app_label:
        return f"{app_label}_{snake}"
    return snake


def model_label(model_name: str, app_label: str | None) -> str:
    """
    Label used in delete summaries, e.g. ``blog.Post``.
    """
    if app_label:
        return f"{app_label}.{model_name}"
    return model_name
