import pytest

from reversible_engine.models import OperationKind, OperationRequest, ValidationFailure, ValidationPassed
from reversible_engine.validation import (
    MinLengthValidator,
    PatternValidator,
    PredicateValidator,
    RequiredFieldValidator,
    ValidatorChain,
)


class RecordingValidator:
    """Counts how often it is consulted and optionally rejects."""

    def __init__(self, name, reason=None):
        self.name = name
        self.reason = reason
        self.calls = 0

    def check(self, request):
        self.calls += 1
        return self.reason


def password_chain():
    return ValidatorChain([
        MinLengthValidator("password", 8),
        PatternValidator("password", r"[^A-Za-z0-9]", "password must contain a special character"),
    ])


def request(**payload):
    return OperationRequest(kind=OperationKind.HANDLE, payload=payload)


def test_empty_chain_passes():
    assert isinstance(ValidatorChain().validate(request()), ValidationPassed)


def test_password_chain_accepts_valid_password():
    assert isinstance(password_chain().validate(request(password="password123!")), ValidationPassed)


def test_first_rejection_reports_index_and_reason():
    result = password_chain().validate(request(password="short"))
    assert isinstance(result, ValidationFailure)
    assert result.validator_index == 0
    assert result.validator_name == "min_length"
    assert "at least 8" in result.reason


def test_second_validator_rejects():
    result = password_chain().validate(request(password="password123"))
    assert isinstance(result, ValidationFailure)
    assert result.validator_index == 1
    assert result.reason == "password must contain a special character"


def test_rejection_short_circuits_later_validators():
    first = RecordingValidator("first", reason="nope")
    second = RecordingValidator("second")
    result = ValidatorChain([first, second]).validate(request())
    assert result.validator_name == "first"
    assert first.calls == 1
    assert second.calls == 0


def test_validators_run_in_order():
    seen = []

    class Tracking:
        def __init__(self, name):
            self.name = name

        def check(self, request):
            seen.append(self.name)
            return None

    ValidatorChain([Tracking("a"), Tracking("b"), Tracking("c")]).validate(request())
    assert seen == ["a", "b", "c"]


def test_chain_is_configurable_at_runtime():
    chain = password_chain()
    uppercase = PatternValidator("password", r"[A-Z]", "password must contain an uppercase letter")
    chain.append(uppercase)
    assert len(chain) == 3

    result = chain.validate(request(password="password123!"))
    assert result.validator_index == 2

    chain.remove(uppercase)
    assert isinstance(chain.validate(request(password="password123!")), ValidationPassed)

    chain.insert(0, RecordingValidator("gate", reason="closed"))
    assert chain.validate(request(password="password123!")).validator_name == "gate"

    chain.clear()
    assert len(chain) == 0


def test_validators_cannot_mutate_the_request():
    class Meddler:
        name = "meddler"

        def check(self, request):
            request.payload["injected"] = True
            return None

    original = request(value=1)
    ValidatorChain([Meddler()]).validate(original)
    assert original.payload == {"value": 1}


def test_missing_field_is_rejected():
    result = ValidatorChain([RequiredFieldValidator("x")]).validate(request())
    assert result.reason == "'x' is required"


def test_field_validator_only_applies_to_listed_kinds():
    chain = ValidatorChain([MinLengthValidator("reason", 3, kinds=[OperationKind.CANCEL])])
    assert isinstance(chain.validate(request()), ValidationPassed)

    cancel = OperationRequest(kind=OperationKind.CANCEL, payload={"reason": "no"})
    assert isinstance(chain.validate(cancel), ValidationFailure)


def test_predicate_validator():
    positive = PredicateValidator("positive", lambda r: r.payload.get("amount", 0) > 0, "amount must be positive")
    chain = ValidatorChain([positive])
    assert isinstance(chain.validate(request(amount=5)), ValidationPassed)
    assert chain.validate(request(amount=-1)).reason == "amount must be positive"


def test_negative_min_length_is_rejected():
    with pytest.raises(ValueError):
        MinLengthValidator("password", -1)


def test_raising_validator_propagates():
    class Broken:
        name = "broken"

        def check(self, request):
            raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        ValidatorChain([Broken()]).validate(request())
