"""
Payload validation

Rules are declared per field, e.g.
    Field("title").rules("required", "string", "max:255")
    Field("email").storing_rules("required", "email")

Presence rules (required, nullable, sometimes) are checked here, the type and
range rules are compiled to a jsonschema fragment per field. Uploaded files are
checked against the file, mimes, min and max (kilobytes) rules.

Callable rules are called as rule(value, attribute, payload) and return True or an error message.
"""
import os
import re
from jsonschema import Draft7Validator, FormatChecker
from werkzeug.datastructures import FileStorage
import restify
from .attr_parse import parse_bool, parse_datetime
from .errors import ValidationError
from .storage import upload_size, is_valid_upload

PRESENCE_RULES = ("required", "nullable", "sometimes", "bail")
TYPE_RULES = ("string", "integer", "numeric", "boolean", "array")

DEFAULT_MESSAGES = {
    "required": "The :attribute field is required.",
    "string": "The :attribute must be a string.",
    "integer": "The :attribute must be an integer.",
    "numeric": "The :attribute must be a number.",
    "boolean": "The :attribute field must be true or false.",
    "array": "The :attribute must be an array.",
    "email": "The :attribute must be a valid email address.",
    "date": "The :attribute is not a valid date.",
    "min": "The :attribute must be at least :param.",
    "max": "The :attribute may not be greater than :param.",
    "in": "The selected :attribute is invalid.",
    "regex": "The :attribute format is invalid.",
    "file": "The :attribute must be a file.",
    "mimes": "The :attribute must be a file of type: :param.",
    "schema": "The :attribute is invalid.",
}

# jsonschema keyword => rule name
KEYWORD_RULES = {
    "minLength": "min",
    "minItems": "min",
    "minimum": "min",
    "maxLength": "max",
    "maxItems": "max",
    "maximum": "max",
    "pattern": "regex",
}

format_checker = FormatChecker()


@format_checker.checks("restify-date", raises=(ValueError, TypeError))
def is_date(value):
    if not isinstance(value, str):
        return True
    parse_datetime(value)
    return True


def normalize_rules(rules):
    """
    :param rules: iterable of rule strings ("required|max:20" is split), callables and jsonschema dicts
    :return: list of rules, duplicates removed, order preserved
    """
    result = []
    for rule in rules or ():
        parts = rule.split("|") if isinstance(rule, str) else [rule]
        for part in parts:
            if isinstance(part, str):
                part = part.strip()
                if not part:
                    continue
            if part not in result:
                result.append(part)
    return result


def split_rule(rule):
    """
    :return: (name, param) tuple, e.g. "max:10" => ("max", "10")
    """
    name, _, param = rule.partition(":")
    return name.strip(), param


def is_missing(value):
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, dict)) and not value:
        return True
    if isinstance(value, FileStorage) and not value.filename:
        return True
    return False


def _number(param):
    return float(param) if "." in param else int(param)


def _coerce(value, type_rule):
    """
    Form values are strings, convert numeric and boolean strings before the schema check
    """
    if not isinstance(value, str):
        return value
    try:
        if type_rule == "integer" and re.fullmatch(r"[+-]?\d+", value.strip()):
            return int(value)
        if type_rule == "numeric":
            return float(value)
        if type_rule == "boolean":
            return parse_bool(value)
    except ValueError:
        pass
    return value


class Validator:
    """
    Validate a payload against the field rules
    :param rules: {attribute: [rules]}
    :param messages: custom messages, keyed by "<rule>" or "<attribute>.<rule>"
    """

    def __init__(self, rules, messages=None):
        self.rules = {attribute: normalize_rules(attr_rules) for attribute, attr_rules in (rules or {}).items()}
        self.messages = dict(messages or {})

    def message(self, attribute, rule_name, param=""):
        template = self.messages.get(f"{attribute}.{rule_name}", self.messages.get(rule_name))
        if template is None:
            template = DEFAULT_MESSAGES.get(rule_name, DEFAULT_MESSAGES["schema"])
        return template.replace(":attribute", attribute.replace("_", " ")).replace(":param", param)

    def validate(self, payload):
        """
        :param payload: dict with the request attributes
        :return: the validated subset of the payload
        :raises ValidationError: {attribute: [messages]}
        """
        errors = self.errors(payload)
        if errors:
            raise ValidationError(errors)
        return {attribute: payload[attribute] for attribute in self.rules if attribute in payload}

    def validate_many(self, rows):
        """
        Validate a list of payloads, error keys are prefixed with the row index: "<row>.<attribute>"
        :return: list of validated payloads
        """
        errors = {}
        result = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                errors[str(index)] = ["The row must be an object."]
                continue
            for attribute, messages in self.errors(row).items():
                errors[f"{index}.{attribute}"] = messages
            result.append({attribute: row[attribute] for attribute in self.rules if attribute in row})
        if errors:
            raise ValidationError(errors)
        return result

    def errors(self, payload):
        """
        :return: dict {attribute: [messages]} for the attributes that failed, empty if the payload is valid
        """
        errors = {}
        for attribute, rules in self.rules.items():
            messages = self.validate_attribute(attribute, rules, payload)
            if messages:
                errors[attribute] = messages
        return errors

    def validate_attribute(self, attribute, rules, payload):
        present = attribute in payload
        value = payload.get(attribute)

        if "sometimes" in rules and not present:
            return []
        if "required" in rules and is_missing(value):
            return [self.message(attribute, "required")]
        if not present:
            return []
        if value is None:
            if "nullable" in rules or not self.schema_rules(rules):
                return []
        if isinstance(value, FileStorage):
            return self.validate_upload(attribute, rules, value)
        if is_missing(value) and "nullable" in rules:
            return []

        messages = []
        for rule in rules:
            if callable(rule):
                result = rule(value, attribute, payload)
                if result is not True:
                    rule_name = getattr(rule, "__name__", "callable")
                    default = result if isinstance(result, str) else self.message(attribute, "schema")
                    template = self.messages.get(f"{attribute}.{rule_name}", self.messages.get(rule_name, default))
                    messages.append(template.replace(":attribute", attribute.replace("_", " ")))
            elif isinstance(rule, str):
                name, param = split_rule(rule)
                if name == "in" and str(value) not in param.split(","):
                    messages.append(self.message(attribute, "in", param))
                elif name in ("file", "mimes") and self.message(attribute, "file") not in messages:
                    messages.append(self.message(attribute, "file"))
        messages.extend(self.schema_errors(attribute, rules, value))
        return messages

    @staticmethod
    def schema_rules(rules):
        skipped = PRESENCE_RULES + ("in", "file", "mimes")
        return [rule for rule in rules if isinstance(rule, dict) or (isinstance(rule, str) and split_rule(rule)[0] not in skipped)]

    def build_schema(self, rules, value):
        """
        Compile the type and range rules to a jsonschema fragment
        :return: schema dict, the name of the type rule (or None)
        """
        schema = {}
        type_rule = None
        for rule in rules:
            if isinstance(rule, dict):
                schema.update(rule)
                continue
            if not isinstance(rule, str):
                continue
            name, param = split_rule(rule)
            if name in TYPE_RULES:
                type_rule = name
                schema["type"] = {"numeric": "number"}.get(name, name)
            elif name == "email":
                schema["type"] = "string"
                schema["format"] = "email"
                type_rule = type_rule or "string"
            elif name == "date":
                schema["format"] = "restify-date"
            elif name == "regex":
                pattern = param
                if len(pattern) > 1 and pattern.startswith("/") and pattern.endswith("/"):
                    pattern = pattern[1:-1]
                schema["pattern"] = pattern

        for rule in rules:
            if not isinstance(rule, str):
                continue
            name, param = split_rule(rule)
            if name not in ("min", "max"):
                continue
            kind = type_rule
            if kind is None:
                kind = "array" if isinstance(value, list) else "string" if isinstance(value, str) else "numeric"
            if kind == "string":
                keyword = "minLength" if name == "min" else "maxLength"
                schema[keyword] = int(_number(param))
            elif kind == "array":
                keyword = "minItems" if name == "min" else "maxItems"
                schema[keyword] = int(_number(param))
            else:
                schema["minimum" if name == "min" else "maximum"] = _number(param)
        return schema, type_rule

    def schema_errors(self, attribute, rules, value):
        schema, type_rule = self.build_schema(rules, value)
        if not schema:
            return []
        value = _coerce(value, type_rule)
        messages = []
        validator = Draft7Validator(schema, format_checker=format_checker)
        for error in validator.iter_errors(value):
            rule_name, param = self.rule_for_error(error, rules, type_rule)
            message = self.message(attribute, rule_name, param)
            if message not in messages:
                messages.append(message)
        return messages

    @staticmethod
    def rule_for_error(error, rules, type_rule):
        """
        Map a jsonschema error back to the rule that produced it
        """
        keyword = error.validator
        if keyword == "type":
            if "email" in rules and "string" not in rules and type_rule == "string":
                return "email", ""
            return type_rule or "schema", ""
        if keyword == "format":
            return ("email", "") if error.validator_value == "email" else ("date", "")
        rule_name = KEYWORD_RULES.get(keyword)
        if rule_name is None:
            return "schema", ""
        for rule in rules:
            if isinstance(rule, str) and split_rule(rule)[0] == rule_name:
                return rule_name, split_rule(rule)[1]
        return rule_name, ""

    def validate_upload(self, attribute, rules, upload):
        messages = []
        if not is_valid_upload(upload):
            if "nullable" in rules:
                return []
            return [self.message(attribute, "file")]
        extension = os.path.splitext(upload.filename)[1].lstrip(".").lower()
        size_kb = upload_size(upload) / 1024
        for rule in rules:
            if callable(rule):
                result = rule(upload, attribute, {attribute: upload})
                if result is not True:
                    messages.append(result if isinstance(result, str) else self.message(attribute, "file"))
                continue
            if not isinstance(rule, str):
                continue
            name, param = split_rule(rule)
            if name == "mimes":
                allowed = [ext.strip().lstrip(".").lower() for ext in param.split(",") if ext.strip()]
                if extension not in allowed:
                    messages.append(self.message(attribute, "mimes", ", ".join(allowed)))
            elif name == "max" and size_kb > _number(param):
                messages.append(self.message(attribute, "max", f"{param} kilobytes"))
            elif name == "min" and size_kb < _number(param):
                messages.append(self.message(attribute, "min", f"{param} kilobytes"))
            elif name in ("string", "integer", "numeric", "boolean", "array", "email", "date"):
                messages.append(self.message(attribute, name))
        if messages:
            restify.log.debug(f"Upload {upload.filename} for {attribute} failed validation: {messages}")
        return messages
