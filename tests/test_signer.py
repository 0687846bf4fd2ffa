"""Tests for request signing and reference slot resolution."""

from __future__ import annotations

import httpx
import pytest

from adapters.http_client import ApiTransport, build_http_client
from core.domain.models import NO_REFERENCE_ID, CollabTokenList, ProfileSlot
from core.domain.session import Build, ProfileConfiguration
from core.errors import ApiError, ReferenceNotFoundError
from core.services.identity import CollabTokenCache
from core.services.signer import RequestSigner, resolve_profile_slot

from conftest import COLLAB_TOKENS, FakeApi, make_settings, signing_response

SLOTS = [
    ProfileSlot(id="S1", number=1, empty=False),
    ProfileSlot(id="S2", number=2, empty=True),
]


def _signer(api: FakeApi, **overrides) -> RequestSigner:
    settings = make_settings(**overrides)
    transport = ApiTransport(build_http_client(settings, transport=httpx.MockTransport(api.handler)))
    identity = CollabTokenCache(lambda: CollabTokenList.model_validate(COLLAB_TOKENS))
    return RequestSigner(transport, identity, settings)


class TestResolveProfileSlot:
    def test_no_reference_uses_sentinel(self) -> None:
        assert resolve_profile_slot(ProfileConfiguration(), SLOTS) == NO_REFERENCE_ID

    def test_next_empty_slot(self) -> None:
        assert resolve_profile_slot(ProfileConfiguration(new_reference=True), SLOTS) == "S2"

    @pytest.mark.parametrize("reference", [1, "1", "S1"])
    def test_explicit_reference_by_number_or_id(self, reference) -> None:
        assert resolve_profile_slot(ProfileConfiguration(reference=reference), SLOTS) == "S1"

    def test_unknown_reference_raises(self) -> None:
        with pytest.raises(ReferenceNotFoundError, match='"99"'):
            resolve_profile_slot(ProfileConfiguration(reference="99"), SLOTS)

    def test_next_empty_skips_sentinel_slot(self) -> None:
        slots = [
            ProfileSlot(id=NO_REFERENCE_ID, number=0, empty=True),
            ProfileSlot(id="S1", number=1, empty=False),
        ]
        with pytest.raises(ReferenceNotFoundError):
            resolve_profile_slot(ProfileConfiguration(new_reference=True), slots)

    def test_first_slot_in_order_wins(self) -> None:
        slots = SLOTS + [ProfileSlot(id="S3", number=3, empty=True)]
        assert resolve_profile_slot(ProfileConfiguration(new_reference=True), slots) == "S2"


class TestRequestSigner:
    def test_signs_with_default_app(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/signing", (200, signing_response("req-9")))

        request = _signer(api).create_request(ProfileConfiguration(metadata={"branch": "main"}))

        body = api.json_body(api.calls_to("POST", "/api/v1/signing")[0])
        assert body == {"collabToken": "tok-default", "profileSlot": NO_REFERENCE_ID}
        assert request.uuid == "req-9"
        assert request.token == "signature=abc&profile_uuid=req-9"
        assert request.profile_url == "https://blackfire.test/api/v1/profiles/req-9"
        assert request.store_url == "https://blackfire.test/api/v1/profiles/req-9/store"
        assert request.user_metadata == {"branch": "main"}

    def test_reference_uses_slots_of_configured_app(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/signing", (200, signing_response()))

        request = _signer(api, app="prod").create_request(ProfileConfiguration(new_reference=True))

        assert request.collab_token == "tok-prod"
        assert request.profile_slot == "slot-p2"

    def test_build_creates_job_and_skips_token_lookup(self) -> None:
        api = FakeApi()
        api.add("POST", "/api/v1/build/b-1/jobs", (200, {"uuid": "job-1"}))
        api.add("POST", "/api/v1/signing", (200, signing_response()))
        build = Build(app="tok-prod", uuid="b-1")

        _signer(api).create_request(ProfileConfiguration(title="Homepage", build=build))

        assert api.json_body(api.calls_to("POST", "/api/v1/build/b-1/jobs")[0]) == {"name": "Homepage"}
        assert api.json_body(api.calls_to("POST", "/api/v1/signing")[0]) == {
            "collabToken": "tok-prod",
            "requestId": "job-1",
            "profileSlot": NO_REFERENCE_ID,
        }
        assert build.job_count == 1
        assert api.calls_to("GET", "/api/v1/collab-tokens") == []

    def test_build_reference_uses_slots_of_build_app(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/build/b-1/jobs", (200, {"uuid": "job-1"}))
        api.add("POST", "/api/v1/signing", (200, signing_response()))
        build = Build(app="tok-prod", uuid="b-1")

        request = _signer(api).create_request(ProfileConfiguration(build=build, reference=1))

        assert request.profile_slot == "slot-p1"

    def test_closed_build_is_rejected(self) -> None:
        api = FakeApi()
        build = Build(app="tok-prod", uuid="b-1", closed=True)
        with pytest.raises(ValueError):
            _signer(api).create_request(ProfileConfiguration(build=build))
        assert api.calls == []

    def test_unknown_reference_does_not_sign(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        with pytest.raises(ReferenceNotFoundError):
            _signer(api, app="staging").create_request(ProfileConfiguration(reference=1))
        assert api.calls_to("POST", "/api/v1/signing") == []

    def test_server_error_while_signing_is_not_retried(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/signing", (500, {"message": "Oops"}))
        with pytest.raises(ApiError) as excinfo:
            _signer(api).create_request(ProfileConfiguration())
        assert excinfo.value.status == 500
        assert len(api.calls_to("POST", "/api/v1/signing")) == 1

    def test_invalid_signing_body_is_api_error(self) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/signing", (200, "<html>maintenance</html>"))
        with pytest.raises(ApiError, match="invalid JSON"):
            _signer(api).create_request(ProfileConfiguration())

    @pytest.mark.parametrize(
        "payload",
        [
            {"uuid": "req-1"},
            {"uuid": "req-1", "query_string": "signature=abc"},
            {"uuid": "req-1", "_links": {"profile": {"href": "https://blackfire.test/api/v1/profiles/req-1"}}},
        ],
    )
    def test_incomplete_signing_body_is_api_error(self, payload) -> None:
        api = FakeApi()
        api.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
        api.add("POST", "/api/v1/signing", (200, payload))
        with pytest.raises(ApiError, match="incomplete signing"):
            _signer(api).create_request(ProfileConfiguration())
