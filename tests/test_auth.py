"""Tests for the Digest authentication module."""

from __future__ import annotations

import asyncio
import re
from unittest.mock import MagicMock

import aiohttp
import pytest

from myenergi_foxess_client.auth import (
    build_digest_header,
    calculate_digest_response,
    fetch_digest_authenticated,
    generate_cnonce,
    is_digest_challenge,
    parse_digest_challenge,
    parse_digest_params,
    select_qop,
)
from myenergi_foxess_client.exceptions import (
    AuthRejectedError,
    ChallengeMalformedError,
    ChallengeMissingError,
    TransportError,
)
from myenergi_foxess_client.models import DigestChallenge

from .conftest import DIGEST_CHALLENGE, TEST_SERVER, mock_response

KNOWN_ANSWER = "81a0063279f0641404f74813d62a4f61"


class TestCalculateDigestResponse:
    """Tests for calculate_digest_response function."""

    def test_known_answer_vector(self) -> None:
        """Test the MD5 qop=auth response for a fixed vector."""
        result = calculate_digest_response(
            username="user",
            password="pass",
            realm="test@host",
            nonce="abc123",
            method="GET",
            uri="/cgi-jstatus-E",
            qop="auth",
            nc="00000001",
            cnonce="0a4f113b",
        )

        assert result == KNOWN_ANSWER

    def test_rfc2617_example(self) -> None:
        """Test the worked example from RFC 2617 section 3.5."""
        result = calculate_digest_response(
            username="Mufasa",
            password="Circle Of Life",
            realm="testrealm@host.com",
            nonce="dcd98b7102dd2f0e8b11d0f600bfb0c093",
            method="GET",
            uri="/dir/index.html",
            qop="auth",
            nc="00000001",
            cnonce="0a4f113b",
        )

        assert result == "6629fae49393a05397450978507c4ef1"

    def test_deterministic(self) -> None:
        """Test identical inputs give identical responses."""
        args = ("user", "pass", "test@host", "abc123", "GET", "/cgi-jstatus-E", "auth", "00000001", "0a4f113b")

        assert calculate_digest_response(*args) == calculate_digest_response(*args)

    def test_without_qop(self) -> None:
        """Test RFC 2069 response when no qop is offered."""
        result = calculate_digest_response(
            "user", "pass", "test@host", "abc123", "GET", "/cgi-jstatus-E"
        )

        assert result == "e90428a85ae2c24b88dd76aa1adf0ab3"

    def test_sha256(self) -> None:
        """Test SHA-256 is used only when requested."""
        result = calculate_digest_response(
            "user",
            "pass",
            "test@host",
            "abc123",
            "GET",
            "/cgi-jstatus-E",
            "auth",
            "00000001",
            "0a4f113b",
            algorithm="SHA-256",
        )

        assert result == "81db256496f99842134ade7559c9346010871cbb0d154f273b711d5121522ee3"

    def test_md5_sess(self) -> None:
        """Test the MD5-sess variant folds nonce and cnonce into HA1."""
        result = calculate_digest_response(
            "user",
            "pass",
            "test@host",
            "abc123",
            "GET",
            "/cgi-jstatus-E",
            "auth",
            "00000001",
            "0a4f113b",
            algorithm="MD5-sess",
        )

        assert result == "0c38ad3307263ba13679f717ff6157e6"

    def test_unsupported_algorithm(self) -> None:
        """Test an unknown algorithm is a malformed challenge."""
        with pytest.raises(ChallengeMalformedError, match="Unsupported digest algorithm"):
            calculate_digest_response(
                "user", "pass", "r", "n", "GET", "/", algorithm="SHA-512-256"
            )


class TestIsDigestChallenge:
    """Tests for is_digest_challenge function."""

    @pytest.mark.parametrize(
        "header",
        [
            DIGEST_CHALLENGE,
            'digest realm="x", nonce="n"',
            '  DIGEST realm="x"',
        ],
    )
    def test_digest_scheme(self, header: str) -> None:
        """Test the Digest scheme token is matched case-insensitively."""
        assert is_digest_challenge(header)

    @pytest.mark.parametrize(
        "header",
        [
            "",
            None,
            'Basic realm="digest-zone"',
            'Bearer error="digest"',
            'Digestive realm="x"',
        ],
    )
    def test_other_schemes(self, header: str | None) -> None:
        """Test only a leading Digest token counts."""
        assert not is_digest_challenge(header)


class TestParseDigestChallenge:
    """Tests for parse_digest_challenge function."""

    def test_parse_standard_challenge(self) -> None:
        """Test parsing a quoted Digest challenge."""
        result = parse_digest_challenge(DIGEST_CHALLENGE)

        assert result == DigestChallenge(
            realm="test@host",
            nonce="abc123",
            opaque="5ccc069c403ebaf9",
            qop="auth",
        )

    def test_parse_unquoted_values(self) -> None:
        """Test parsing unquoted values."""
        result = parse_digest_challenge("Digest realm=MyEnergi, nonce=abc123, qop=auth")

        assert result.realm == "MyEnergi"
        assert result.nonce == "abc123"
        assert result.qop == "auth"
        assert result.opaque is None

    def test_parse_algorithm(self) -> None:
        """Test the algorithm parameter is kept."""
        result = parse_digest_challenge(
            'Digest realm="r", nonce="n", algorithm=MD5, stale=FALSE'
        )

        assert result.algorithm == "MD5"

    def test_parse_params_lowercases_keys(self) -> None:
        """Test parameter names are case-insensitive."""
        params = parse_digest_params('digest Realm="r", NONCE="n"')

        assert params == {"realm": "r", "nonce": "n"}

    def test_missing_nonce(self) -> None:
        """Test challenge without nonce is malformed."""
        with pytest.raises(ChallengeMalformedError, match="nonce"):
            parse_digest_challenge('Digest realm="test@host"')

    def test_missing_realm(self) -> None:
        """Test challenge without realm is malformed."""
        with pytest.raises(ChallengeMalformedError, match="realm"):
            parse_digest_challenge('Digest nonce="abc123"')

    def test_empty_nonce(self) -> None:
        """Test challenge with an empty nonce is malformed."""
        with pytest.raises(ChallengeMalformedError):
            parse_digest_challenge('Digest realm="r", nonce=""')


class TestSelectQop:
    """Tests for select_qop function."""

    def test_no_qop(self) -> None:
        """Test no qop offered."""
        assert select_qop(None) is None

    def test_auth_from_list(self) -> None:
        """Test auth is picked from a list of options."""
        assert select_qop("auth,auth-int") == "auth"

    def test_auth_int_only(self) -> None:
        """Test auth-int only is rejected."""
        with pytest.raises(ChallengeMalformedError, match="qop"):
            select_qop("auth-int")


class TestBuildDigestHeader:
    """Tests for build_digest_header function."""

    def test_header_with_fixed_cnonce(self) -> None:
        """Test full header for a fixed cnonce."""
        challenge = DigestChallenge(
            realm="test@host", nonce="abc123", opaque="xyz", qop="auth"
        )

        result = build_digest_header(
            "user", "pass", challenge, "GET", "/cgi-jstatus-E", cnonce="0a4f113b"
        )

        assert result == (
            'username="user", realm="test@host", nonce="abc123", '
            f'uri="/cgi-jstatus-E", response="{KNOWN_ANSWER}", '
            'qop=auth, nc=00000001, cnonce="0a4f113b", opaque="xyz"'
        )

    def test_header_without_qop(self) -> None:
        """Test header has no qop/nc/cnonce when none was offered."""
        challenge = DigestChallenge(realm="test@host", nonce="abc123")

        result = build_digest_header("user", "pass", challenge, "GET", "/cgi-jstatus-E")

        assert 'response="e90428a85ae2c24b88dd76aa1adf0ab3"' in result
        assert "qop=" not in result
        assert "cnonce=" not in result
        assert "opaque=" not in result

    def test_header_echoes_algorithm(self) -> None:
        """Test the challenge's algorithm is echoed."""
        challenge = DigestChallenge(
            realm="test@host", nonce="abc123", qop="auth", algorithm="SHA-256"
        )

        result = build_digest_header(
            "user", "pass", challenge, "GET", "/cgi-jstatus-E", cnonce="0a4f113b"
        )

        assert "algorithm=SHA-256" in result
        assert (
            'response="81db256496f99842134ade7559c9346010871cbb0d154f273b711d5121522ee3"'
            in result
        )

    def test_fresh_cnonce_per_header(self) -> None:
        """Test each header gets its own cnonce."""
        challenge = DigestChallenge(realm="test@host", nonce="abc123", qop="auth")

        first = build_digest_header("user", "pass", challenge, "GET", "/cgi-jstatus-E")
        second = build_digest_header("user", "pass", challenge, "GET", "/cgi-jstatus-E")

        assert first != second

    def test_generate_cnonce(self) -> None:
        """Test cnonce is 16 lowercase hex characters."""
        cnonce = generate_cnonce()

        assert re.fullmatch(r"[0-9a-f]{16}", cnonce)


class TestFetchDigestAuthenticated:
    """Tests for fetch_digest_authenticated function."""

    @pytest.mark.asyncio
    async def test_successful_handshake(self) -> None:
        """Test unauthenticated request, challenge and authenticated request."""
        challenge_response = mock_response(401, {"WWW-Authenticate": DIGEST_CHALLENGE})
        data_response = mock_response(200, text='{"eddi": []}')

        mock_session = MagicMock()
        mock_session.request = MagicMock(side_effect=[challenge_response, data_response])

        result = await fetch_digest_authenticated(
            mock_session, TEST_SERVER, "user", "pass", "GET", "/cgi-jstatus-E"
        )

        assert result == '{"eddi": []}'
        assert mock_session.request.call_count == 2

        first_call, auth_call = mock_session.request.call_args_list
        assert first_call.args == ("GET", "https://s18.myenergi.net/cgi-jstatus-E")
        assert "headers" not in first_call.kwargs

        authorization = auth_call.kwargs["headers"]["Authorization"]
        assert authorization.startswith("Digest ")
        assert 'username="user"' in authorization
        assert 'uri="/cgi-jstatus-E"' in authorization
        assert "nc=00000001" in authorization
        assert 'opaque="5ccc069c403ebaf9"' in authorization

        cnonce = re.search(r'cnonce="([0-9a-f]+)"', authorization).group(1)
        expected = calculate_digest_response(
            "user", "pass", "test@host", "abc123", "GET", "/cgi-jstatus-E", "auth", "00000001", cnonce
        )
        assert f'response="{expected}"' in authorization

    @pytest.mark.asyncio
    async def test_unauthenticated_success_skips_handshake(self) -> None:
        """Test a 2xx first response is returned without a second round trip."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(return_value=mock_response(200, text="{}"))

        result = await fetch_digest_authenticated(
            mock_session, TEST_SERVER, "user", "pass"
        )

        assert result == "{}"
        mock_session.request.assert_called_once()

    @pytest.mark.asyncio
    async def test_first_response_unexpected_status(self) -> None:
        """Test a non-401 error first response is rejected."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(return_value=mock_response(503))

        with pytest.raises(AuthRejectedError, match="Expected 401") as exc_info:
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        assert exc_info.value.status == 503
        assert exc_info.value.stage == "challenge"

    @pytest.mark.asyncio
    async def test_missing_challenge_header(self) -> None:
        """Test 401 without WWW-Authenticate."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(return_value=mock_response(401))

        with pytest.raises(ChallengeMissingError, match="Challenge missing"):
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        mock_session.request.assert_called_once()

    @pytest.mark.asyncio
    async def test_basic_challenge_is_missing_digest(self) -> None:
        """Test a Basic challenge is not accepted."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            return_value=mock_response(401, {"WWW-Authenticate": 'Basic realm="x"'})
        )

        with pytest.raises(ChallengeMissingError):
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

    @pytest.mark.asyncio
    async def test_basic_challenge_mentioning_digest(self) -> None:
        """Test a Basic challenge whose realm contains "digest" is not accepted."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            return_value=mock_response(
                401, {"WWW-Authenticate": 'Basic realm="digest-zone"'}
            )
        )

        with pytest.raises(ChallengeMissingError):
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        mock_session.request.assert_called_once()

    @pytest.mark.asyncio
    async def test_malformed_challenge(self) -> None:
        """Test challenge without nonce stops before the second request."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            return_value=mock_response(401, {"WWW-Authenticate": 'Digest realm="x"'})
        )

        with pytest.raises(ChallengeMalformedError):
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        mock_session.request.assert_called_once()

    @pytest.mark.asyncio
    async def test_final_request_rejected(self) -> None:
        """Test a 401 on the authenticated request."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            side_effect=[
                mock_response(401, {"WWW-Authenticate": DIGEST_CHALLENGE}),
                mock_response(401, {"WWW-Authenticate": DIGEST_CHALLENGE}),
            ]
        )

        with pytest.raises(AuthRejectedError, match="Authentication failed") as exc_info:
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "wrong")

        assert exc_info.value.status == 401
        assert exc_info.value.stage == "authenticate"
        assert "wrong" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connection_error_on_first_request(self) -> None:
        """Test connection errors are transport errors, not rejections."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            side_effect=aiohttp.ClientConnectionError("Connection reset")
        )

        with pytest.raises(TransportError, match="challenge request failed") as exc_info:
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        assert exc_info.value.vendor == "myenergi"
        assert exc_info.value.stage == "challenge"

    @pytest.mark.asyncio
    async def test_timeout_on_authenticated_request(self) -> None:
        """Test a timeout on the second request is a transport error."""
        mock_session = MagicMock()
        mock_session.request = MagicMock(
            side_effect=[
                mock_response(401, {"WWW-Authenticate": DIGEST_CHALLENGE}),
                asyncio.TimeoutError(),
            ]
        )

        with pytest.raises(TransportError) as exc_info:
            await fetch_digest_authenticated(mock_session, TEST_SERVER, "user", "pass")

        assert exc_info.value.stage == "authenticate"
