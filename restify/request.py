"""
Request parsing for the repository endpoints

Query string arguments:
- perPage, page, relatablePerPage : pagination
- search : free text search term
- match[column]=value : exact column matches, a "-" prefix negates
- sort=col,-col : ordering, a "-" prefix sorts descending
- related=rel1,rel2 : relationships to load and serialize
- filters : base64 encoded json list of {"class": ..., "value": ...} filter specs

The body payload may be a json object, a jsonapi document ({"data": {"attributes": {..}}}),
a json list (bulk create) or a form with files
"""

import base64
import binascii
import json
import re
from flask import Request
import restify
from .config import get_int_config
from .errors import BadRequestError

INDEX = "index"
SHOW = "show"
STORE = "store"
UPDATE = "update"
DESTROY = "destroy"
PHASES = (INDEX, SHOW, STORE, UPDATE, DESTROY)

MATCH_RE = re.compile(r"match\[([\w.-]+)\]")


def _split_csv(value):
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def decode_filters(raw):
    """
    Decode the `filters` query argument
    :param raw: base64(json) or plain json string
    :return: list of {"class": .., "value": ..} dicts, an empty list if decoding fails
    """
    if not raw:
        return []
    decoded = None
    try:
        padded = raw + "=" * (-len(raw) % 4)
        decoded = json.loads(base64.b64decode(padded, validate=True).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError):
        try:
            decoded = json.loads(raw)
        except ValueError:
            restify.log.warning(f'Ignoring undecodable filters argument "{raw}"')
            return []

    if isinstance(decoded, dict):
        decoded = [decoded]
    if not isinstance(decoded, list):
        restify.log.warning(f'Ignoring invalid filters argument "{raw}"')
        return []
    return [spec for spec in decoded if isinstance(spec, dict) and spec.get("class")]


# pylint: disable=too-many-ancestors, logging-format-interpolation
class RestifyRequest(Request):
    """
    Parse the repository request arguments and payload
    """

    _phase = None

    def _int_arg(self, name, default):
        value = self.args.get(name)
        if value in (None, ""):
            return default
        try:
            result = int(value)
        except ValueError:
            raise BadRequestError(f'Invalid "{name}" argument "{value}"')
        if result < 1:
            raise BadRequestError(f'Invalid "{name}" argument "{value}"')
        return result

    @property
    def page(self):
        """
        :return: requested page number (1 based)
        """
        return self._int_arg("page", 1)

    def get_per_page(self, default=None):
        """
        :param default: repository default page size
        :return: page size requested by the client, capped at MAX_PER_PAGE
        """
        if default is None:
            default = get_int_config("DEFAULT_PER_PAGE", 15)
        per_page = self._int_arg("perPage", None)
        if per_page is None:
            per_page = self._int_arg("per_page", default)
        max_per_page = get_int_config("MAX_PER_PAGE", 1000)
        return min(per_page, max_per_page)

    @property
    def per_page(self):
        return self.get_per_page()

    def get_relatable_per_page(self, default=None):
        if default is None:
            default = get_int_config("DEFAULT_RELATABLE_PER_PAGE", 15)
        return self._int_arg("relatablePerPage", default)

    @property
    def search_term(self):
        return self.args.get("search", "").strip()

    @property
    def matches(self):
        """
        :return: dict with the match[column] arguments
        """
        result = {}
        for arg, val in self.args.items():
            match_attr = MATCH_RE.fullmatch(arg)
            if match_attr:
                result[match_attr.group(1)] = val
        return result

    @property
    def sorts(self):
        """
        :return: list of requested sort columns, "-" prefixed for descending order
        """
        return _split_csv(self.args.get("sort"))

    @property
    def related(self):
        return _split_csv(self.args.get("related"))

    @property
    def includes(self):
        return _split_csv(self.args.get("include"))

    @property
    def filters(self):
        return decode_filters(self.args.get("filters", ""))

    @property
    def is_bulk(self):
        return self.method == "POST" and self.is_json and isinstance(self.get_json(silent=True), list)

    def get_payload(self):
        """
        :return: dict with the request attributes
        """
        if self.is_json:
            data = self.get_json(silent=True)
            if data is None:
                if self.get_data():
                    raise BadRequestError("Invalid JSON Payload")
                return {}
            if isinstance(data, dict) and isinstance(data.get("data"), dict) and "attributes" in data["data"]:
                # jsonapi document
                data = data["data"]["attributes"]
            if not isinstance(data, (dict, list)):
                raise BadRequestError(f"Invalid JSON Payload : {data}")
            return data

        payload = {}
        for key in self.form:
            values = self.form.getlist(key)
            payload[key] = values if len(values) > 1 or key.endswith("[]") else values[0]
        for key in self.files:
            payload[key] = self.files[key]
        return payload

    @property
    def payload(self):
        return self.get_payload()

    @property
    def phase(self):
        """
        :return: the lifecycle phase of the request: index, show, store, update or destroy
        """
        if self._phase is not None:
            return self._phase
        has_id = bool((self.view_args or {}).get("repository_id"))
        if self.method == "POST":
            return STORE
        if self.method in ("PUT", "PATCH"):
            return UPDATE
        if self.method == "DELETE":
            return DESTROY
        return SHOW if has_id else INDEX

    @phase.setter
    def phase(self, value):
        if value is not None and value not in PHASES:
            raise ValueError(f"Invalid request phase {value}")
        self._phase = value

    def is_index(self):
        return self.phase == INDEX

    def is_show(self):
        return self.phase == SHOW

    def is_store(self):
        return self.phase == STORE

    def is_update(self):
        return self.phase == UPDATE
