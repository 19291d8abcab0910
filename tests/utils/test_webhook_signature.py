import hashlib
import hmac

from carelog.api.utils.webhook_signature import verify_mailgun_signature

KEY = "key-abc123"
NOW = 1_736_150_000


def _sign(timestamp, token, key=KEY):
    return hmac.new(key.encode(), f"{timestamp}{token}".encode(), hashlib.sha256).hexdigest()


def test_valid_signature():
    signature = _sign(str(NOW), "tok")

    assert verify_mailgun_signature("tok", str(NOW), signature, KEY, now=NOW) is True


def test_wrong_key():
    signature = _sign(str(NOW), "tok", key="other")

    assert verify_mailgun_signature("tok", str(NOW), signature, KEY, now=NOW) is False


def test_tampered_token():
    signature = _sign(str(NOW), "tok")

    assert verify_mailgun_signature("tok2", str(NOW), signature, KEY, now=NOW) is False


def test_stale_timestamp():
    old = str(NOW - 901)

    assert verify_mailgun_signature("tok", old, _sign(old, "tok"), KEY, now=NOW) is False
    edge = str(NOW - 900)
    assert verify_mailgun_signature("tok", edge, _sign(edge, "tok"), KEY, now=NOW) is True


def test_malformed_timestamp_and_missing_key():
    assert verify_mailgun_signature("tok", "yesterday", "sig", KEY, now=NOW) is False
    assert verify_mailgun_signature("tok", str(NOW), _sign(str(NOW), "tok"), "", now=NOW) is False
