"""
Pagination of the index queries
"""
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode


@dataclass(frozen=True)
class Paginator:
    """
    One page of results
    """

    items: Tuple[Any, ...]
    total: int
    per_page: int
    current_page: int
    path: str = ""
    query_args: Tuple[Tuple[str, str], ...] = ()

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def first_item(self) -> Optional[int]:
        if not self.items:
            return None
        return (self.current_page - 1) * self.per_page + 1

    @property
    def last_item(self) -> Optional[int]:
        if not self.items:
            return None
        return self.first_item + len(self.items) - 1

    def url(self, page: int) -> str:
        args = [(key, val) for key, val in self.query_args if key != "page"]
        args.append(("page", str(page)))
        return f"{self.path}?{urlencode(args)}"

    def meta(self) -> Dict[str, Any]:
        return {
            "current_page": self.current_page,
            "from": self.first_item,
            "last_page": self.last_page,
            "path": self.path,
            "per_page": self.per_page,
            "to": self.last_item,
            "total": self.total,
        }

    def links(self) -> Dict[str, Optional[str]]:
        return {
            "first": self.url(1),
            "last": self.url(self.last_page),
            "prev": self.url(self.current_page - 1) if self.current_page > 1 else None,
            "next": self.url(self.current_page + 1) if self.current_page < self.last_page else None,
        }

    def with_items(self, items) -> "Paginator":
        """
        :return: a copy holding `items`, e.g. the rows wrapped in repositories
        """
        return Paginator(tuple(items), self.total, self.per_page, self.current_page, self.path, self.query_args)


def paginate(query, per_page: int, page: int = 1, path: str = "", query_args=()) -> Paginator:
    """
    :param query: sqla query object
    :param per_page: page size
    :param page: 1 based page number
    :param path: url of the collection, used to build the links
    :param query_args: the other query string arguments, these are kept in the links
    """
    # count without the ordering, it's irrelevant for the total and may fail on some backends
    total = query.order_by(None).count()
    items = query.limit(per_page).offset((page - 1) * per_page).all()
    return Paginator(tuple(items), total, per_page, page, path, tuple(query_args))
