"""Tests for ID token decoding and claim validation.

High-impact tests covering:
- Segment count, base64url and JSON failures, each reported distinctly
- Required claims and audience normalization
- The validation battery and its ordering
- Refusal of tokens from untrusted sources
"""

import base64
import json

import pytest

from authcode.models.errors import (
    AudienceMismatchError,
    Base64DecodeError,
    ClaimValidationError,
    IssuerMismatchError,
    JsonDecodeError,
    MissingClaimError,
    NonceMismatchError,
    NonceMissingError,
    TokenExpiredError,
    TokenFormatError,
    TokenNotYetValidError,
    UntrustedSourceError,
)
from authcode.models.id_token import TokenSource, ValidationConfig
from authcode.services.id_token import (
    GOOGLE_ISSUER,
    IdTokenValidator,
    decode_id_token,
    google_validation_config,
    microsoft_validation_config,
    user_info_from_claims,
    validate_claims,
    validate_id_token,
    validate_id_token_from_source,
)

NOW = 1_700_000_000
ISSUER = "https://accounts.example.com"


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def make_token(payload: dict, header: dict | None = None) -> str:
    header = header or {"alg": "RS256", "typ": "JWT", "kid": "key-1"}
    return ".".join(
        [
            b64url(json.dumps(header).encode()),
            b64url(json.dumps(payload).encode()),
            "c2lnbmF0dXJl",
        ]
    )


def make_claims(**overrides) -> dict:
    claims = {
        "iss": ISSUER,
        "sub": "user-123",
        "aud": "client123",
        "exp": NOW + 3600,
        "iat": NOW - 10,
    }
    claims.update(overrides)
    return claims


@pytest.fixture
def config() -> ValidationConfig:
    return ValidationConfig.create(ISSUER, "client123")


class TestDecodeIdToken:
    def test_decodes_header_claims_and_signature(self):
        # Arrange
        token = make_token(
            make_claims(
                email="u@example.com",
                email_verified=True,
                auth_time=NOW - 20,
                picture="https://img.example.com/u.png",
            )
        )

        # Act
        decoded = decode_id_token(token)

        # Assert
        assert decoded.header.alg == "RS256"
        assert decoded.header.typ == "JWT"
        assert decoded.header.kid == "key-1"
        assert decoded.claims.sub == "user-123"
        assert decoded.claims.aud == ["client123"]
        assert decoded.claims.email_verified is True
        assert decoded.claims.auth_time == NOW - 20
        assert decoded.signature == "c2lnbmF0dXJl"

    def test_audience_array_kept_in_order(self):
        token = make_token(make_claims(aud=["first", "client123", "third"]))

        assert decode_id_token(token).claims.aud == ["first", "client123", "third"]

    @pytest.mark.parametrize("token", ["a.b", "a.b.c.d", "nodots", ""])
    def test_wrong_segment_count_is_format_error(self, token):
        with pytest.raises(TokenFormatError):
            decode_id_token(token)

    def test_invalid_base64_header(self):
        token = "!!!." + make_token(make_claims()).split(".", 1)[1]

        with pytest.raises(Base64DecodeError) as exc_info:
            decode_id_token(token)

        assert exc_info.value.segment == "header"

    def test_invalid_base64_payload(self):
        header = make_token(make_claims()).split(".")[0]

        with pytest.raises(Base64DecodeError) as exc_info:
            decode_id_token(f"{header}.a.sig")

        assert exc_info.value.segment == "payload"

    def test_invalid_json_payload(self):
        header = make_token(make_claims()).split(".")[0]

        with pytest.raises(JsonDecodeError) as exc_info:
            decode_id_token(f"{header}.{b64url(b'not json')}.sig")

        assert exc_info.value.segment == "payload"

    def test_non_object_header(self):
        payload = make_token(make_claims()).split(".")[1]

        with pytest.raises(JsonDecodeError) as exc_info:
            decode_id_token(f"{b64url(b'[1,2]')}.{payload}.sig")

        assert exc_info.value.segment == "header"

    def test_header_without_alg(self):
        with pytest.raises(JsonDecodeError):
            decode_id_token(make_token(make_claims(), header={"typ": "JWT"}))

    @pytest.mark.parametrize("claim", ["iss", "sub", "exp", "iat", "aud"])
    def test_missing_required_claim_named(self, claim):
        payload = make_claims()
        del payload[claim]

        with pytest.raises(MissingClaimError) as exc_info:
            decode_id_token(make_token(payload))

        assert exc_info.value.claim == claim

    @pytest.mark.parametrize(
        "overrides, claim",
        [
            ({"exp": "soon"}, "exp"),
            ({"iat": True}, "iat"),
            ({"aud": []}, "aud"),
            ({"aud": ["ok", 7]}, "aud"),
            ({"iss": None}, "iss"),
        ],
    )
    def test_mistyped_required_claim_is_missing(self, overrides, claim):
        with pytest.raises(MissingClaimError) as exc_info:
            decode_id_token(make_token(make_claims(**overrides)))

        assert exc_info.value.claim == claim

    def test_mistyped_optional_claims_dropped(self):
        token = make_token(make_claims(email=5, email_verified="yes", nonce=None))

        claims = decode_id_token(token).claims

        assert claims.email is None
        assert claims.email_verified is None
        assert claims.nonce is None


class TestValidateClaims:
    def test_bare_string_audience_validates(self, config):
        claims = validate_id_token(config, make_token(make_claims()), now=NOW)

        assert claims.aud == ["client123"]

    def test_audience_mismatch(self, config):
        with pytest.raises(AudienceMismatchError) as exc_info:
            validate_id_token(config, make_token(make_claims(aud=["other"])), now=NOW)

        assert exc_info.value.expected == "client123"
        assert exc_info.value.actual == ["other"]

    def test_issuer_mismatch(self, config):
        token = make_token(make_claims(iss="https://evil.example.com"))

        with pytest.raises(IssuerMismatchError) as exc_info:
            validate_id_token(config, token, now=NOW)

        assert exc_info.value.expected == ISSUER
        assert exc_info.value.actual == "https://evil.example.com"

    def test_expired_beyond_skew(self):
        # Arrange
        config = ValidationConfig.create(ISSUER, "client123", clock_skew_seconds=60)
        token = make_token(make_claims(exp=NOW - 3600, iat=NOW - 7200))

        # Act & Assert
        with pytest.raises(TokenExpiredError) as exc_info:
            validate_id_token(config, token, now=NOW)

        assert exc_info.value.exp == NOW - 3600
        assert exc_info.value.now == NOW

    def test_expired_within_large_skew_passes(self):
        config = ValidationConfig.create(ISSUER, "client123", clock_skew_seconds=4000)
        token = make_token(make_claims(exp=NOW - 3600, iat=NOW - 7200))

        assert validate_id_token(config, token, now=NOW).sub == "user-123"

    def test_expiry_boundary_is_inclusive(self, config):
        token = make_token(make_claims(exp=NOW - 60))

        validate_id_token(config, token, now=NOW)
        with pytest.raises(TokenExpiredError):
            validate_id_token(config, token, now=NOW + 1)

    def test_issued_in_future_beyond_skew(self, config):
        token = make_token(make_claims(iat=NOW + 61))

        with pytest.raises(TokenNotYetValidError) as exc_info:
            validate_id_token(config, token, now=NOW)

        assert exc_info.value.iat == NOW + 61

    def test_issued_in_future_within_skew_passes(self, config):
        validate_id_token(config, make_token(make_claims(iat=NOW + 60)), now=NOW)

    def test_checks_stop_at_first_failure(self, config):
        # Wrong issuer, wrong audience and expired: issuer is reported
        token = make_token(
            make_claims(iss="https://other.example.com", aud="x", exp=NOW - 9999)
        )

        with pytest.raises(IssuerMismatchError):
            validate_id_token(config, token, now=NOW)

    def test_nonce_not_checked_unless_required(self, config):
        token = make_token(make_claims(nonce="anything"))

        validate_id_token(config, token, now=NOW)

    def test_nonce_missing(self):
        config = ValidationConfig.create(ISSUER, "client123", expected_nonce="n-1")

        with pytest.raises(NonceMissingError) as exc_info:
            validate_id_token(config, make_token(make_claims()), now=NOW)

        assert exc_info.value.expected == "n-1"
        assert exc_info.value.actual is None

    def test_nonce_mismatch(self):
        config = ValidationConfig.create(ISSUER, "client123", expected_nonce="n-1")

        with pytest.raises(NonceMismatchError) as exc_info:
            validate_id_token(config, make_token(make_claims(nonce="n-2")), now=NOW)

        assert exc_info.value.actual == "n-2"

    def test_nonce_match(self):
        config = ValidationConfig.create(ISSUER, "client123", expected_nonce="n-1")

        token = make_token(make_claims(nonce="n-1"))

        claims = validate_id_token(config, token, now=NOW)

        assert claims.nonce == "n-1"

    def test_claim_errors_share_base_class(self, config):
        claims = decode_id_token(make_token(make_claims(aud="x"))).claims

        with pytest.raises(ClaimValidationError):
            validate_claims(config, claims, now=NOW)

    def test_defaults_to_current_time(self, config):
        # Far-future expiry, long-past issue time: valid whatever the clock
        token = make_token(make_claims(exp=2**40, iat=0))

        assert validate_id_token(config, token).sub == "user-123"


class TestValidationConfig:
    def test_require_nonce_without_expected_nonce_rejected(self):
        with pytest.raises(ValueError):
            ValidationConfig(issuer=ISSUER, client_id="c", require_nonce=True)

    def test_create_derives_nonce_requirement(self):
        assert not ValidationConfig.create(ISSUER, "c").require_nonce
        assert ValidationConfig.create(ISSUER, "c", expected_nonce="n").require_nonce

    def test_default_clock_skew(self):
        assert ValidationConfig.create(ISSUER, "c").clock_skew_seconds == 60

    def test_provider_configs(self):
        google = google_validation_config("g-client")
        microsoft = microsoft_validation_config("m-client", "tenant-id", "n")

        assert google.issuer == GOOGLE_ISSUER
        assert google.client_id == "g-client"
        assert microsoft.issuer == (
            "https://login.microsoftonline.com/tenant-id/v2.0"
        )
        assert microsoft.require_nonce


class TestTokenSource:
    def test_direct_source_validates_claims(self, config):
        claims = validate_id_token_from_source(
            TokenSource.DIRECT_FROM_TOKEN_ENDPOINT,
            config,
            make_token(make_claims()),
            now=NOW,
        )

        assert claims.sub == "user-123"

    @pytest.mark.parametrize(
        "token", [make_token(make_claims()), "garbage", "a.b.c"]
    )
    def test_untrusted_source_always_refused(self, config, token):
        with pytest.raises(UntrustedSourceError, match="signature verification"):
            validate_id_token_from_source(
                TokenSource.FROM_UNTRUSTED_SOURCE, config, token, now=NOW
            )

    def test_validator_uses_injected_clock(self, config):
        validator = IdTokenValidator(config, clock=lambda: NOW + 7200)

        with pytest.raises(TokenExpiredError):
            validator.validate(make_token(make_claims()))

    def test_validator_refuses_untrusted(self, config):
        validator = IdTokenValidator(config, clock=lambda: NOW)

        with pytest.raises(UntrustedSourceError):
            validator.validate(
                make_token(make_claims()), TokenSource.FROM_UNTRUSTED_SOURCE
            )


class TestUserInfoFromClaims:
    def test_maps_standard_claims(self, config):
        # Arrange
        claims = validate_id_token(
            config,
            make_token(
                make_claims(
                    email="u@example.com",
                    email_verified=True,
                    name="Ursula User",
                    given_name="Ursula",
                    family_name="User",
                    picture="https://img.example.com/u.png",
                    locale="en-GB",
                )
            ),
            now=NOW,
        )

        # Act
        user_info = user_info_from_claims("google", claims)

        # Assert
        assert user_info.provider == "google"
        assert user_info.provider_user_id == "user-123"
        assert user_info.avatar_url == "https://img.example.com/u.png"
        assert user_info.username is None
        assert user_info.raw_response == {
            "sub": "user-123",
            "iss": ISSUER,
            "email": "u@example.com",
        }
