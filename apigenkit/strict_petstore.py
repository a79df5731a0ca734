"""A pet store whose handlers take typed requests and return typed responses."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any

from .petstore import NewPet, PetNotFoundError, PetStore

__all__ = [
    "FindPetsRequest",
    "AddPetRequest",
    "PetIdRequest",
    "JsonResponse",
    "StrictPetStore",
]


@dataclass(frozen=True)
class FindPetsRequest:
    """Parameters for listing pets."""

    tags: Sequence[str] | None = None
    limit: int | None = None


@dataclass(frozen=True)
class AddPetRequest:
    """A request to store a new pet."""

    body: NewPet


@dataclass(frozen=True)
class PetIdRequest:
    """A request addressing one pet by its id."""

    id: int


@dataclass(frozen=True)
class JsonResponse:
    """A status code with a JSON-ready body, or no body at all."""

    status: int
    body: Any = None

    def json(self) -> str:
        """Return the body encoded as JSON text, empty when there is no body."""
        return "" if self.body is None else json.dumps(self.body)


@dataclass
class StrictPetStore:
    """Typed request handlers over an in-memory pet store."""

    backend: PetStore = field(default_factory=PetStore)

    def find_pets(self, request: FindPetsRequest) -> JsonResponse:
        """List pets, filtered by tag and limited as the request asks."""
        pets = self.backend.find_pets(request.tags, request.limit)
        return JsonResponse(HTTPStatus.OK, [pet.to_dict() for pet in pets])

    def add_pet(self, request: AddPetRequest) -> JsonResponse:
        """Store the pet in the request body and return it with its new id."""
        pet = self.backend.add_pet(request.body)
        return JsonResponse(HTTPStatus.OK, pet.to_dict())

    def find_pet_by_id(self, request: PetIdRequest) -> JsonResponse:
        """Return the requested pet, or a not-found error body."""
        try:
            pet = self.backend.find_pet_by_id(request.id)
        except PetNotFoundError as exc:
            return JsonResponse(HTTPStatus.NOT_FOUND, exc.error.to_dict())
        return JsonResponse(HTTPStatus.OK, pet.to_dict())

    def delete_pet(self, request: PetIdRequest) -> JsonResponse:
        """Delete the requested pet, or return a not-found error body."""
        try:
            self.backend.delete_pet(request.id)
        except PetNotFoundError as exc:
            return JsonResponse(HTTPStatus.NOT_FOUND, exc.error.to_dict())
        return JsonResponse(HTTPStatus.NO_CONTENT)