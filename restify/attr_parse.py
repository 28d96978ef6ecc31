import datetime
import restify
import sqlalchemy

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


def parse_bool(attr_val):
    """
    :param attr_val: request value, e.g. "true", "0", True
    :return: boolean
    """
    if isinstance(attr_val, bool):
        return attr_val
    if isinstance(attr_val, (int, float)):
        return bool(attr_val)
    value = str(attr_val).strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value {attr_val}")


def parse_datetime(attr_val):
    """
    Parse datetime values for some common representations:
    epoch timestamps, iso format and str(datetime.datetime.now())
    """
    if isinstance(attr_val, datetime.datetime):
        return attr_val
    if isinstance(attr_val, datetime.date):
        return datetime.datetime.combine(attr_val, datetime.time())
    if isinstance(attr_val, (int, float)) and not isinstance(attr_val, bool):
        return datetime.datetime.fromtimestamp(attr_val)
    date_str = str(attr_val).strip()
    if date_str.isdigit():
        return datetime.datetime.fromtimestamp(int(date_str))
    try:
        return datetime.datetime.fromisoformat(date_str)
    except ValueError:
        pass
    # JS datepicker format
    return datetime.datetime.strptime(date_str, "%Y-%m-%d %H:%M:%S")


def parse_date(attr_val):
    """
    :return: datetime.date
    """
    if isinstance(attr_val, datetime.datetime):
        return attr_val.date()
    if isinstance(attr_val, datetime.date):
        return attr_val
    return datetime.datetime.strptime(str(attr_val)[:10], "%Y-%m-%d").date()


def parse_attr(column, attr_val):
    """
    Parse the supplied `attr_val` so it can be saved in the SQLAlchemy `column`

    :param column: SQLAlchemy column
    :param attr_val: request attribute value
    :return: processed value
    :raises ValueError: the value can't be converted to the column type
    """
    if attr_val is None or column is None:
        return attr_val

    if getattr(column, "python_type", None):
        # It's possible for a column to specify a custom python_type to use for deserialization
        return column.python_type(attr_val)

    try:
        python_type = column.type.python_type
    except NotImplementedError as exc:
        # custom column type: the user/dev should know how to handle it
        restify.log.debug(exc)
        return attr_val

    # skip type coercion on JSON columns, since they could be anything
    if isinstance(column.type, sqlalchemy.types.JSON):
        return attr_val

    if python_type == datetime.datetime:
        return parse_datetime(attr_val) if attr_val != "" else None
    if python_type == datetime.date:
        return parse_date(attr_val) if attr_val != "" else None
    if python_type == datetime.time:  # pragma: no cover
        if isinstance(attr_val, datetime.time):
            return attr_val
        return datetime.time.fromisoformat(str(attr_val))
    if python_type == bool:
        return parse_bool(attr_val)
    if python_type in (int, float) and attr_val == "":
        return None
    if isinstance(attr_val, python_type):
        return attr_val
    return python_type(attr_val)


MATCH_TYPES = {
    "text": str,
    "string": str,
    "str": str,
    "bool": parse_bool,
    "boolean": parse_bool,
    "int": int,
    "integer": int,
    "number": float,
    "float": float,
    "numeric": float,
    "date": parse_date,
    "datetime": parse_datetime,
    "timestamp": parse_datetime,
}


def parse_match_value(match_type, attr_val):
    """
    Coerce a query string match value to the declared match type
    :param match_type: type name, e.g. "text", "bool", "int", "date"
    :raises ValueError: when the value can't be coerced
    """
    caster = MATCH_TYPES.get(str(match_type).lower(), str)
    return caster(attr_val)
