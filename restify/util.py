#
import re
from functools import _lru_cache_wrapper, lru_cache
from typing import Callable, Union
import inflect

_inflect = inflect.engine()


class ClassPropertyDescriptor:
    """
    ClassPropertyDescriptor
    """

    def __init__(self, fget: classmethod, fset: None = None) -> None:
        self.fget = fget
        self.fset = fset

    def __get__(self, obj, klass=None):
        """
        __get__
        """
        if klass is None:
            klass = type(obj)
        return self.fget.__get__(obj, klass)()

    def __set__(self, obj, value):
        """
        __set__
        """
        if not self.fset:
            raise AttributeError("can't set attribute")
        type_ = type(obj)
        return self.fset.__get__(obj, type_)(value)


def classproperty(func: Union[Callable, _lru_cache_wrapper]) -> ClassPropertyDescriptor:
    """
    classproperty
    """
    if not isinstance(func, (classmethod, staticmethod)):
        func = classmethod(func)

    return ClassPropertyDescriptor(func)


def kebab_case(name: str) -> str:
    """
    :param name: CamelCase name
    :return: kebab-case name, e.g. BlogPost => blog-post
    """
    name = re.sub(r"(.)([A-Z][a-z]+)", r"\1-\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name).replace("_", "-").lower()


@lru_cache(maxsize=256)
def plural(name: str) -> str:
    """
    Pluralize the last word of a kebab-case name, e.g. blog-category => blog-categories
    """
    *head, last = name.split("-")
    return "-".join(head + [_inflect.plural_noun(last) or last])
