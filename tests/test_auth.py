import pytest

from apigenkit.auth import (
    PERMISSIONS_CLAIM,
    AuthError,
    ClaimsInvalidError,
    InvalidAuthHeaderError,
    NoAuthHeaderError,
    authenticate,
    check_token_claims,
    get_claims_from_token,
    get_jws_from_request,
)


class FakeValidator:
    def __init__(self, tokens):
        self.tokens = tokens

    def validate_jws(self, jws):
        if jws not in self.tokens:
            raise ValueError("bad signature")
        return self.tokens[jws]


def test_get_jws_from_bearer_header():
    assert get_jws_from_request({"Authorization": "Bearer token"}) == "token"


def test_get_jws_header_name_is_case_insensitive():
    assert get_jws_from_request({"authorization": "Bearer secret"}) == "secret"


def test_missing_header():
    with pytest.raises(NoAuthHeaderError, match="Authorization header is missing"):
        get_jws_from_request({})


def test_malformed_header():
    with pytest.raises(InvalidAuthHeaderError, match="Authorization header is malformed"):
        get_jws_from_request({"Authorization": "Basic token"})


def test_claims_absent_gives_empty_list():
    assert get_claims_from_token({}) == []


def test_claims_round_trip():
    assert get_claims_from_token({PERMISSIONS_CLAIM: ["a", "b"]}) == ["a", "b"]


def test_claims_wrong_type():
    with pytest.raises(AuthError, match="unexpected type"):
        get_claims_from_token({PERMISSIONS_CLAIM: "a"})


def test_claims_non_string_element():
    with pytest.raises(AuthError, match=r"perms\[1\] is not a string"):
        get_claims_from_token({PERMISSIONS_CLAIM: ["a", 3]})


def test_check_token_claims_missing_scope():
    with pytest.raises(ClaimsInvalidError):
        check_token_claims(["things:w"], {PERMISSIONS_CLAIM: []})


def test_check_token_claims_all_present():
    token = {PERMISSIONS_CLAIM: ["things:w", "things:r"]}
    check_token_claims(["things:w"], token)
    assert get_claims_from_token(token) == ["things:w", "things:r"]


def test_authenticate_returns_token():
    token = {PERMISSIONS_CLAIM: ["things:w"]}
    validator = FakeValidator({"token": token})
    result = authenticate(validator, "BearerAuth", {"Authorization": "Bearer token"}, ["things:w"])
    assert result == token


def test_authenticate_wrong_scheme():
    with pytest.raises(AuthError, match="security scheme Other != 'BearerAuth'"):
        authenticate(FakeValidator({}), "Other", {"Authorization": "Bearer token"}, [])


def test_authenticate_without_header():
    with pytest.raises(NoAuthHeaderError, match="getting jws"):
        authenticate(FakeValidator({}), "BearerAuth", {}, [])


def test_authenticate_invalid_signature():
    with pytest.raises(AuthError, match="validating JWS") as info:
        authenticate(FakeValidator({}), "BearerAuth", {"Authorization": "Bearer token"}, [])
    assert isinstance(info.value.__cause__, ValueError)


def test_authenticate_insufficient_claims():
    validator = FakeValidator({"token": {}})
    with pytest.raises(ClaimsInvalidError, match="token claims don't match"):
        authenticate(validator, "BearerAuth", {"Authorization": "Bearer token"}, ["things:w"])