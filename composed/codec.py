"""Module to support encoding and decoding of values to and from JSON."""

import dataclasses
import enum
import iso8601
import keyword
import logging
import typing

from collections.abc import Iterable, Mapping, Set
from composed.types import is_optional, is_subclass, strip_annotations
from contextlib import contextmanager, suppress
from datetime import date, datetime, timezone
from types import NoneType, UnionType
from typing import Any, Generic, TypeVar, Union, get_args, get_origin
from uuid import UUID


_logger = logging.getLogger(__name__)


# ----- type aliases -----


JSONType = Any


# name of the data class field that captures undeclared properties
ADDITIONAL_PROPERTIES = "additional_properties"


# ----- utilities -----


def _cache_key(python_type: Any) -> Any:
    # str | UUID == UUID | str, but members are tried in declared order
    args = get_args(python_type)
    return (python_type, tuple(map(_cache_key, args))) if args else python_type


@contextmanager
def _wrap(exception):
    try:
        yield
    except Exception as e:
        if isinstance(e, exception):
            raise
        raise exception from e


# ----- errors -----


class CodecError(ValueError):
    """
    Base class for errors raised in the event that a value cannot be encoded or decoded.
    """

    __slots__ = {"message", "path"}

    def __init__(self, message: str | None = None, path: list[str | int] | None = None):
        self.message = message
        self.path = path

    def __repr__(self):
        return f"{self.__class__.__name__}({self.message!r}, {self.path!r})"

    def __str__(self):
        return " ".join(str(s) for s in (self.message, self.path) if s is not None)

    @staticmethod
    @contextmanager
    def path_on_error(path: list[str | int] | str | int) -> None:
        """Context manager to add to error path in the event that a CodecError is raised."""
        try:
            yield
        except CodecError as ce:
            if ce.path is None:
                ce.path = []
            match path:
                case str() | int():
                    ce.path.insert(0, path)
                case list():
                    ce.path = path + ce.path
            raise


class EncodeError(CodecError):
    """Error raised in the event that a value cannot be encoded."""


class DecodeError(CodecError):
    """Error raised in the event that a value cannot be decoded."""


# ----- base -----


PT = TypeVar("PT")  # Python type hint
TT = TypeVar("TT")  # target type hint


class Codec(Generic[PT, TT]):
    """
    Base class for all things encode and decode.
    """

    def __init__(self, python_type: Any):
        self.python_type = python_type

    @staticmethod
    def handles(python_type: Any) -> bool:
        """Return True if the codec handles the specified Python type."""
        raise NotImplementedError

    @classmethod
    def get(cls, python_type: Any) -> "Codec[PT, TT]":
        """
        Return a codec that handles the specified Python type.

        Subclasses are consulted in the order they are defined. If the subclass contains a
        `_cache` mapping attribute, the resulting codec is cached for subsequent calls. Union
        type hints that differ only in the order of their members are cached separately.
        """
        if cls is Codec:
            raise NotImplementedError
        with suppress(AttributeError, KeyError, TypeError):
            return cls._cache[_cache_key(python_type)]
        for codec_class in cls.__subclasses__():
            if codec_class.handles(python_type):
                codec = codec_class(python_type)
                with suppress(AttributeError, TypeError):
                    cache = getattr(codec, "_cache", False)
                    if isinstance(cache, Mapping):
                        cache[_cache_key(python_type)] = codec
                return codec
        raise TypeError(f"no codec for {python_type}")

    def encode(self, value: PT) -> TT:
        """Encode value from Python type to target type."""
        raise NotImplementedError

    def decode(self, value: TT) -> PT:
        """Decode value from target type to Python type."""
        raise NotImplementedError


class JSONCodec(Codec[PT, JSONType]):
    """Encodes Python types to/from the JSON object model representations."""

    _cache = {}

    def encode(self, value: PT) -> JSONType:
        """Encode value from Python type to JSON type."""
        raise NotImplementedError

    def decode(self, value: JSONType) -> PT:
        """Decode value from JSON type to Python type."""
        raise NotImplementedError


# ----- Enum -----


class EnumJSONCodec(JSONCodec[enum.Enum]):
    """
    JSON codec for enumerations. Members are represented in JSON by their values. A value
    that is not a member of the enumeration cannot be decoded.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, enum.Enum)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)

    def encode(self, value: enum.Enum) -> JSONType:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        return value.value

    def decode(self, value: JSONType) -> enum.Enum:
        if isinstance(value, bool) or not isinstance(value, str | int | float):
            raise DecodeError
        with _wrap(DecodeError):
            return self.raw_type(value)


# ----- str -----


class StrJSONCodec(JSONCodec[str]):
    """JSON codec for Unicode character strings."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, str)

    def encode(self, value: str) -> JSONType:
        if not isinstance(value, str):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> str:
        if not isinstance(value, str):
            raise DecodeError
        return value


# ----- int -----


class IntJSONCodec(JSONCodec[int]):
    """JSON codec for integers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, int) and not is_subclass(python_type, bool)

    def encode(self, value: int) -> JSONType:
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> int:
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise DecodeError
        result = value
        if isinstance(result, float):
            result = int(result)
            if result != value:  # 1.0 == 1
                raise DecodeError
        return result


# ----- float -----


class FloatJSONCodec(JSONCodec[float]):
    """JSON codec for floating point numbers."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, float)

    def encode(self, value: float) -> JSONType:
        if not isinstance(value, float):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> float:
        if not isinstance(value, int | float) or isinstance(value, bool):
            raise DecodeError
        return float(value)


# ----- bool -----


class BoolJSONCodec(JSONCodec[bool]):
    """JSON codec for boolean values."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, bool)

    def encode(self, value: bool) -> JSONType:
        if not isinstance(value, bool):
            raise EncodeError
        return value

    def decode(self, value: JSONType) -> bool:
        if not isinstance(value, bool):
            raise DecodeError
        return value


# ----- NoneType -----


class NoneTypeJSONCodec(JSONCodec[NoneType]):
    """JSON codec for None value."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return python_type is NoneType or python_type is None

    def encode(self, value: NoneType) -> JSONType:
        if value is not None:
            raise EncodeError
        return None

    def decode(self, value: JSONType) -> NoneType:
        if value is not None:
            raise DecodeError
        return None


# ----- date -----


class DateJSONCodec(JSONCodec[date]):
    """
    JSON codec for dates. A date is represented in JSON as an RFC 3339 formatted string.
    Example: "2018-06-16".
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, date) and not is_subclass(python_type, datetime)

    def encode(self, value: date) -> JSONType:
        if not isinstance(value, date):
            raise EncodeError
        return value.isoformat()

    def decode(self, value: JSONType) -> date:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return date.fromisoformat(value)


# ----- datetime -----


def _to_utc(value):
    if value.tzinfo is None:  # naive value interpreted as UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DatetimeJSONCodec(JSONCodec[datetime]):
    """
    JSON codec for datetime.

    It will decode a datetime represented in an ISO 8601 formatted string. It will encode a
    datetime to an RFC 3339 (subset of ISO 8601) formatted string.

    Datetimes always encode and decode to UTC timezone offset.

    Example: "2020-04-07T12:34:56.789012Z".
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, datetime)

    def encode(self, value: datetime) -> JSONType:
        if not isinstance(value, datetime):
            raise EncodeError
        result = _to_utc(value).isoformat()
        if result.endswith("+00:00"):
            result = result[0:-6]
        if "+" not in result and not result.endswith("Z"):
            result = f"{result}Z"
        return result

    def decode(self, value: JSONType) -> datetime:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return _to_utc(iso8601.parse_date(value))


# ----- UUID -----


class UUIDJSONCodec(JSONCodec[UUID]):
    """JSON codec for UUID."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return is_subclass(python_type, UUID)

    def encode(self, value: UUID) -> JSONType:
        if not isinstance(value, UUID):
            raise EncodeError
        return str(value)

    def decode(self, value: JSONType) -> UUID:
        if not isinstance(value, str):
            raise DecodeError
        with _wrap(DecodeError):
            return UUID(value)


# ----- Mapping -----


class MappingJSONCodec(JSONCodec[PT]):
    """JSON codec for mappings; represented in JSON as objects."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        return is_subclass(origin, Mapping) and not getattr(origin, "__annotations__", None)

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        python_type = strip_annotations(python_type)
        args = get_args(python_type) or (str, Any)
        if len(args) != 2:
            raise TypeError("expecting Mapping[KT, VT]")
        self.key_codec = JSONCodec.get(args[0])
        self.value_codec = JSONCodec.get(args[1])

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, Mapping):
            raise EncodeError
        result = {}
        for k, v in value.items():
            key = self.key_codec.encode(k)
            if not isinstance(key, str):
                raise EncodeError("object keys must be strings")
            with CodecError.path_on_error(key):
                result[key] = self.value_codec.encode(v)
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, Mapping):
            raise DecodeError
        result = {}
        for k, v in value.items():
            key = self.key_codec.decode(k)
            with CodecError.path_on_error(k):
                result[key] = self.value_codec.decode(v)
        return result


# ----- Iterable -----


class IterableJSONCodec(JSONCodec[PT]):
    """JSON codec for iterables, such as lists and sets; represented in JSON as arrays."""

    _AVOID = str | bytes | bytearray | Mapping | tuple

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        return is_subclass(origin, Iterable) and not is_subclass(
            origin, IterableJSONCodec._AVOID
        )

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        python_type = strip_annotations(python_type)
        origin = get_origin(python_type) or python_type
        args = get_args(python_type) or (Any,)
        if len(args) != 1:
            raise TypeError("expecting Iterable[T]")
        self.decode_type = list if origin is Iterable else origin
        self.codec = JSONCodec.get(args[0])
        self.is_set = is_subclass(origin, Set)

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, Iterable) or isinstance(value, IterableJSONCodec._AVOID):
            raise EncodeError
        if self.is_set:
            value = sorted(value)
        result = []
        for index, item in enumerate(value):
            with CodecError.path_on_error(index):
                result.append(self.codec.encode(item))
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, list):
            raise DecodeError
        result = []
        for index, item in enumerate(value):
            with CodecError.path_on_error(index):
                result.append(self.codec.decode(item))
        return self.decode_type(result)


# ----- dataclass -----


class DataclassJSONCodec(JSONCodec[PT]):
    """
    JSON codec for data classes; represented in JSON as objects.

    Properties not declared as data class fields are handled according to the strictness of
    the data class (see `composed.data.datacls`):
    • strict: the value cannot be decoded
    • permissive: properties are captured in the `additional_properties` field if the data
      class declares one, otherwise they are ignored

    Polymorphic data classes (those declaring a discriminator property) are handled by the
    codec in the `composed.inheritance` module.
    """

    # keywords have _ suffix in dataclass fields (e.g. "in_", "for_", ...)
    _dc_kw = {k + "_": k for k in keyword.kwlist}

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return dataclasses.is_dataclass(python_type) and not hasattr(
            python_type, "__discriminator__"
        )

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        self.raw_type = strip_annotations(python_type)
        self.hints = typing.get_type_hints(self.raw_type, include_extras=True)
        self.strict = getattr(self.raw_type, "__strict__", False)
        self.fields = [
            f for f in dataclasses.fields(self.raw_type) if f.name != ADDITIONAL_PROPERTIES
        ]
        self.names = {DataclassJSONCodec._dc_kw.get(f.name, f.name): f for f in self.fields}
        self.additional = len(self.fields) != len(dataclasses.fields(self.raw_type))

    @property
    def _codecs(self) -> Mapping[str, JSONCodec[Any]]:
        return {f.name: JSONCodec.get(self.hints[f.name]) for f in self.fields}

    def encode(self, value: PT) -> JSONType:
        if not isinstance(value, self.raw_type):
            raise EncodeError
        codecs = self._codecs
        result = {}
        for name, field in self.names.items():
            v = getattr(value, field.name, None)
            if v is not None:
                with CodecError.path_on_error(field.name):
                    result[name] = codecs[field.name].encode(v)
        if self.additional:
            for k, v in (getattr(value, ADDITIONAL_PROPERTIES, None) or {}).items():
                result.setdefault(k, v)
        return result

    def decode(self, value: JSONType) -> PT:
        if not isinstance(value, dict):
            raise DecodeError
        unknown = [k for k in value if k not in self.names]
        if unknown and self.strict:
            raise DecodeError(f"unexpected properties: {', '.join(map(str, unknown))}")
        codecs = self._codecs
        kwargs = {}
        for name, field in self.names.items():
            try:
                with CodecError.path_on_error(field.name):
                    kwargs[field.name] = codecs[field.name].decode(value[name])
            except KeyError:
                if (
                    is_optional(field.type)
                    and field.default is dataclasses.MISSING
                    and field.default_factory is dataclasses.MISSING
                ):
                    kwargs[field.name] = None
        if unknown and self.additional:
            kwargs[ADDITIONAL_PROPERTIES] = {k: value[k] for k in unknown}
        elif unknown:
            _logger.debug("%s ignores properties: %s", self.raw_type.__name__, unknown)
        with _wrap(DecodeError):
            return self.raw_type(**kwargs)


# ----- UnionType/Union -----


class UnionJSONCodec(JSONCodec[PT]):
    """
    JSON codec for union types. Values are encoded and decoded by the first type in the
    union, in declared order, that succeeds. A None value decodes to None if the union is
    optional.

    If no type succeeds, the error of the last type tried is raised; the error of the only
    other type of an optional union, such as a composition error, thus reaches the caller.
    """

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return get_origin(python_type) in {UnionType, Union}

    def __init__(self, python_type: Any):
        super().__init__(python_type)
        python_type = strip_annotations(python_type)
        self.optional = is_optional(python_type)
        self.codecs = tuple(
            JSONCodec.get(arg)
            for arg in dict.fromkeys(get_args(python_type))
            if arg is not NoneType
        )

    def encode(self, value: PT) -> JSONType:
        if value is None and self.optional:
            return None
        error = EncodeError()
        for codec in self.codecs:
            try:
                return codec.encode(value)
            except EncodeError as ee:
                error = ee
        raise error

    def decode(self, value: JSONType) -> PT:
        if value is None and self.optional:
            return None
        error = DecodeError()
        for codec in self.codecs:
            try:
                return codec.decode(value)
            except DecodeError as de:
                error = de
        raise error


# ----- Any -----


class AnyJSONCodec(JSONCodec[Any]):
    """JSON codec for Any. Values are decoded as-is."""

    @staticmethod
    def handles(python_type: Any) -> bool:
        python_type = strip_annotations(python_type)
        return python_type is Any

    def encode(self, value: Any) -> JSONType:
        return JSONCodec.get(type(value)).encode(value)

    def decode(self, value: JSONType) -> Any:
        return value
