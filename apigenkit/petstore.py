"""An in-memory pet store serving the expanded petstore API."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import parse_qs, urlsplit

__all__ = [
    "Pet",
    "NewPet",
    "ApiError",
    "PetNotFoundError",
    "Response",
    "PetStore",
]

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


class _BadInput(ValueError):
    """Raised internally when request data does not fit the API."""


@dataclass(frozen=True)
class Pet:
    """A stored pet."""

    id: int = 0
    name: str = ""
    tag: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the pet."""
        out: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.tag is not None:
            out["tag"] = self.tag
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Pet:
        """Build a pet from its JSON form."""
        return cls(id=data.get("id", 0), name=data.get("name", ""), tag=data.get("tag"))


@dataclass(frozen=True)
class NewPet:
    """A pet that has not yet been given an id."""

    name: str
    tag: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the new pet."""
        out: dict[str, Any] = {"name": self.name}
        if self.tag is not None:
            out["tag"] = self.tag
        return out

    @classmethod
    def from_dict(cls, data: Any) -> NewPet:
        """Build a new pet from its JSON form, rejecting malformed input."""
        if not isinstance(data, Mapping):
            raise _BadInput("expected an object")
        name = data.get("name")
        tag = data.get("tag")
        if not isinstance(name, str):
            raise _BadInput("name must be a string")
        if tag is not None and not isinstance(tag, str):
            raise _BadInput("tag must be a string")
        return cls(name=name, tag=tag)


@dataclass(frozen=True)
class ApiError:
    """The error body returned by the API."""

    code: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form of the error."""
        return {"code": self.code, "message": self.message}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ApiError:
        """Build an error from its JSON form."""
        return cls(code=data["code"], message=data["message"])


class PetNotFoundError(LookupError):
    """Raised when no pet has the requested id."""

    def __init__(self, pet_id: int) -> None:
        super().__init__(f"Could not find pet with ID {pet_id}")
        self.pet_id = pet_id

    @property
    def error(self) -> ApiError:
        """The API error body describing this failure."""
        return ApiError(code=HTTPStatus.NOT_FOUND, message=str(self))


@dataclass(frozen=True)
class Response:
    """An HTTP status code with a JSON-ready body."""

    status: int
    body: Any = None

    def json(self) -> str:
        """Return the body encoded as JSON text."""
        return json.dumps(self.body)


def _error_response(status: int, message: str) -> Response:
    return Response(status, ApiError(code=int(status), message=message).to_dict())


def _parse_int(text: str, low: int, high: int, what: str) -> int:
    try:
        value = int(text)
    except ValueError as exc:
        raise _BadInput(f"Invalid format for parameter {what}: {text!r}") from exc
    if not low <= value <= high:
        raise _BadInput(f"Invalid format for parameter {what}: {text!r} is out of range")
    return value


def _merge_query(path_query: str, query: str | Mapping[str, Any] | None) -> dict[str, list[str]]:
    params: dict[str, list[str]] = {
        k: list(v) for k, v in parse_qs(path_query, keep_blank_values=True).items()
    }
    if query is None:
        return params
    if isinstance(query, str):
        extra = parse_qs(query.lstrip("?"), keep_blank_values=True)
    else:
        extra = {
            k: [v] if isinstance(v, (str, int)) else list(v)
            for k, v in query.items()
        }
    for key, values in extra.items():
        params.setdefault(key, []).extend(str(v) for v in values)
    return params


def _decode_body(body: Any) -> Any:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    if isinstance(body, str):
        return json.loads(body)
    return body


@dataclass
class PetStore:
    """Pets kept in memory, with ids handed out from next_id upwards."""

    pets: dict[int, Pet] = field(default_factory=dict)
    next_id: int = 1000
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def find_pets(self, tags: Iterable[str] | None = None, limit: int | None = None) -> list[Pet]:
        """Return pets, filtered by tag when tags are given, up to limit entries."""
        tag_list = None if tags is None else list(tags)
        result: list[Pet] = []
        with self.lock:
            for pet in self.pets.values():
                if tag_list is not None:
                    result.extend(pet for t in tag_list if pet.tag is not None and pet.tag == t)
                else:
                    result.append(pet)
                if limit is not None and len(result) >= limit:
                    break
        return result

    def add_pet(self, new_pet: NewPet) -> Pet:
        """Store a new pet under the next free id and return it."""
        with self.lock:
            pet = Pet(id=self.next_id, name=new_pet.name, tag=new_pet.tag)
            self.next_id += 1
            self.pets[pet.id] = pet
        return pet

    def find_pet_by_id(self, pet_id: int) -> Pet:
        """Return the pet with the given id."""
        with self.lock:
            try:
                return self.pets[pet_id]
            except KeyError:
                raise PetNotFoundError(pet_id) from None

    def delete_pet(self, pet_id: int) -> None:
        """Remove the pet with the given id."""
        with self.lock:
            if pet_id not in self.pets:
                raise PetNotFoundError(pet_id)
            del self.pets[pet_id]

    def handle(
        self,
        method: str,
        path: str,
        query: str | Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Response:
        """Serve one API request and return its response."""
        method = method.upper()
        parts = urlsplit(path)
        params = _merge_query(parts.query, query)
        segments = [s for s in parts.path.split("/") if s]

        if segments == ["pets"]:
            if method == "GET":
                return self._handle_find_pets(params)
            if method == "POST":
                return self._handle_add_pet(body)
            return _error_response(HTTPStatus.METHOD_NOT_ALLOWED, "method not allowed")
        if len(segments) == 2 and segments[0] == "pets":
            try:
                pet_id = _parse_int(segments[1], _INT64_MIN, _INT64_MAX, "id")
            except _BadInput as exc:
                return _error_response(HTTPStatus.BAD_REQUEST, str(exc))
            try:
                if method == "GET":
                    return Response(HTTPStatus.OK, self.find_pet_by_id(pet_id).to_dict())
                if method == "DELETE":
                    self.delete_pet(pet_id)
                    return Response(HTTPStatus.NO_CONTENT)
            except PetNotFoundError as exc:
                return Response(HTTPStatus.NOT_FOUND, exc.error.to_dict())
            return _error_response(HTTPStatus.METHOD_NOT_ALLOWED, "method not allowed")
        return _error_response(HTTPStatus.NOT_FOUND, "no matching operation was found")

    def _handle_find_pets(self, params: Mapping[str, Sequence[str]]) -> Response:
        tags = list(params["tags"]) if "tags" in params else None
        limit = None
        if params.get("limit"):
            try:
                limit = _parse_int(params["limit"][0], _INT32_MIN, _INT32_MAX, "limit")
            except _BadInput as exc:
                return _error_response(HTTPStatus.BAD_REQUEST, str(exc))
        pets = self.find_pets(tags, limit)
        return Response(HTTPStatus.OK, [pet.to_dict() for pet in pets])

    def _handle_add_pet(self, body: Any) -> Response:
        try:
            new_pet = NewPet.from_dict(_decode_body(body))
        except (ValueError, UnicodeDecodeError):
            return _error_response(HTTPStatus.BAD_REQUEST, "Invalid format for NewPet")
        pet = self.add_pet(new_pet)
        return Response(HTTPStatus.CREATED, pet.to_dict())