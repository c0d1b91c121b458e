import asyncio

import pytest

from festpass.errors import ConfigurationError, InvalidRequest, StoreUnavailable
from festpass.passes import PassVerifier, VERIFIED, TAMPERED, NOT_FOUND
from festpass.passes.signing import compute_verification_hash

SECRET = "verifier-test-secret"
PASS_ID = "0b9d6f1e-7c2a-4d8e-a1f3-5e6b7c8d9e0f"
TS = "2026-10-19T08:15:30.123Z"


@pytest.fixture
def seeded(store):
    store.docs.append({
        "$id": "doc-1",
        "securePassId": PASS_ID,
        "receiptId": 10001,
        "displayTransactionId": "ACF-10001",
        "donorName": "Jane Doe",
        "amount": 501,
        "purpose": "",
        "transactionTimestamp": TS,
        "verificationHash": compute_verification_hash(PASS_ID, 501, TS, SECRET),
        "paymentMethodTag": "cash",
    })
    return store


def _verify(store, identifier, secret=SECRET):
    return asyncio.run(PassVerifier(store, secret).verify(identifier))


def test_verified_by_pass_id_and_by_receipt(seeded):
    by_id = _verify(seeded, PASS_ID)
    by_receipt = _verify(seeded, "ACF-10001")
    assert by_id.valid and by_receipt.valid
    assert by_id.reason == by_receipt.reason == VERIFIED
    assert by_id.record == by_receipt.record
    assert by_id.record.donor_name == "Jane Doe"
    assert by_id.message == "Pass verified successfully"


def test_identifier_is_trimmed(seeded):
    assert _verify(seeded, f"  {PASS_ID}\n").valid


def test_lookup_tries_pass_id_before_receipt(seeded):
    _verify(seeded, "ACF-10001")
    lookups = [c[1] for c in seeded.calls]
    assert lookups == [("securePassId", "ACF-10001"),
                       ("displayTransactionId", "ACF-10001")]
    assert all(c[3] == 1 for c in seeded.calls)


def test_unknown_identifier_is_not_found(seeded):
    result = _verify(seeded, "ACF-99999")
    assert (result.valid, result.reason, result.record) == (False, NOT_FOUND, None)
    assert result.to_json()["record"] is None


@pytest.mark.parametrize("field, value", [
    ("amount", 502),
    ("securePassId", "0b9d6f1e-7c2a-4d8e-a1f3-000000000000"),
    ("transactionTimestamp", "2026-10-19T08:15:31.123Z"),
    ("verificationHash", "0" * 64),
    ("verificationHash", ""),
    ("amount", "a lot"),
])
def test_tampering_is_detected(seeded, field, value):
    seeded.docs[0][field] = value
    result = _verify(seeded, "ACF-10001")
    assert not result.valid
    assert result.reason == TAMPERED
    assert result.record is not None
    assert result.message == "Pass exists but has been tampered with"


def test_hash_never_leaves_in_public_json(seeded):
    body = _verify(seeded, PASS_ID).to_json()
    assert "verificationHash" not in body["record"]
    assert body["message"] == "Pass verified successfully"


def test_empty_identifier_is_invalid(seeded):
    with pytest.raises(InvalidRequest):
        _verify(seeded, "   ")
    with pytest.raises(InvalidRequest):
        _verify(seeded, None)
    assert seeded.calls == []


@pytest.mark.parametrize("identifier", [10001, ["ACF-10001"], {"id": PASS_ID}])
def test_non_string_identifier_is_invalid(seeded, identifier):
    with pytest.raises(InvalidRequest) as ei:
        _verify(seeded, identifier)
    assert ei.value.message == "Pass identifier must be a string"
    assert seeded.calls == []


def test_missing_secret_is_a_configuration_error(seeded):
    with pytest.raises(ConfigurationError):
        _verify(seeded, PASS_ID, secret="")


def test_store_outage_propagates(seeded, down):
    seeded.fail = down
    with pytest.raises(StoreUnavailable):
        _verify(seeded, PASS_ID)


def test_verification_is_read_only(seeded):
    before = [dict(d) for d in seeded.docs]
    for _ in range(3):
        _verify(seeded, PASS_ID)
    assert seeded.docs == before
    assert all(c[0] == "list" for c in seeded.calls)
