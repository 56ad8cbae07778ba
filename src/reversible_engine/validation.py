"""
This module implements the validator chain that gates submissions.

The chain is an owned, ordered list of validators rather than a linked chain
of `next` pointers: validators are independent of each other, can be added or
removed at runtime, and the first one that rejects stops the walk.
"""
import logging
import re
from typing import Any, Callable, Iterable, Iterator, List, Optional, Union

from .models import OperationKind, OperationRequest, ValidationFailure, ValidationPassed
from .protocols import Validator


class ValidatorChain:
    """Runs validators strictly in configured order, short-circuiting on the first rejection."""

    def __init__(self, validators: Optional[Iterable[Validator]] = None):
        self._validators: List[Validator] = list(validators or [])

    def validate(
        self, request: OperationRequest
    ) -> Union[ValidationPassed, ValidationFailure]:
        for index, validator in enumerate(self._validators):
            # Each validator sees its own copy, so nothing it does can leak
            # into the request the engine goes on to execute.
            reason = validator.check(request.model_copy(deep=True))
            if reason is not None:
                name = getattr(validator, "name", type(validator).__name__)
                logging.debug(f"Validator #{index} ({name}) rejected request: {reason}")
                return ValidationFailure(
                    validator_index=index, validator_name=name, reason=reason
                )
        return ValidationPassed()

    def append(self, validator: Validator):
        self._validators.append(validator)

    def insert(self, index: int, validator: Validator):
        self._validators.insert(index, validator)

    def remove(self, validator: Validator):
        self._validators.remove(validator)

    def clear(self):
        self._validators.clear()

    def __len__(self) -> int:
        return len(self._validators)

    def __iter__(self) -> Iterator[Validator]:
        return iter(list(self._validators))


class FieldValidator:
    """
    Base for validators that inspect a single payload field. When `kinds` is
    given, requests of any other kind pass untouched.
    """

    name = "field"

    def __init__(self, field: str, kinds: Optional[Iterable[OperationKind]] = None):
        self.field = field
        self.kinds = frozenset(kinds) if kinds is not None else None

    def applies_to(self, request: OperationRequest) -> bool:
        return self.kinds is None or request.kind in self.kinds

    def check(self, request: OperationRequest) -> Optional[str]:
        if not self.applies_to(request):
            return None
        if self.field not in request.payload:
            return f"'{self.field}' is required"
        return self.check_value(request.payload[self.field])

    def check_value(self, value: Any) -> Optional[str]:
        return None


class RequiredFieldValidator(FieldValidator):
    name = "required"


class MinLengthValidator(FieldValidator):
    name = "min_length"

    def __init__(
        self,
        field: str,
        min_length: int,
        kinds: Optional[Iterable[OperationKind]] = None,
    ):
        if min_length < 0:
            raise ValueError("min_length must not be negative")
        super().__init__(field, kinds)
        self.min_length = min_length

    def check_value(self, value: Any) -> Optional[str]:
        if len(str(value)) < self.min_length:
            return f"'{self.field}' must be at least {self.min_length} characters"
        return None


class PatternValidator(FieldValidator):
    """Passes when the pattern is found anywhere in the field's string value."""

    name = "pattern"

    def __init__(
        self,
        field: str,
        pattern: str,
        reason: str,
        kinds: Optional[Iterable[OperationKind]] = None,
    ):
        super().__init__(field, kinds)
        self.pattern = re.compile(pattern)
        self.reason = reason

    def check_value(self, value: Any) -> Optional[str]:
        if self.pattern.search(str(value)) is None:
            return self.reason
        return None


class PredicateValidator:
    """Wraps a plain predicate over the whole request."""

    def __init__(
        self, name: str, predicate: Callable[[OperationRequest], bool], reason: str
    ):
        self.name = name
        self.predicate = predicate
        self.reason = reason

    def check(self, request: OperationRequest) -> Optional[str]:
        return None if self.predicate(request) else self.reason
