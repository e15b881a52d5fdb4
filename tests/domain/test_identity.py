"""Tests for the vector identity scheme (URI -> bounded storage key)."""

import re

import pytest

from hybrid_retrieval.domain.errors import IdentityDerivationError, ValidationError
from hybrid_retrieval.domain.identity import (
    MAX_VECTOR_ID_BYTES,
    derive_all_ids,
    derive_base_id,
    derive_chunk_index,
    derive_id,
    ensure_id_within_limit,
)

URI = "at://did:plc:abc123/app.greengale.document/3kxyz"
URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


class TestDeriveId:
    def test_deterministic(self) -> None:
        """Same URI always yields the same ID."""
        assert derive_id(URI) == derive_id(URI)
        assert derive_base_id(URI) == derive_base_id(URI)

    def test_distinct_uris_distinct_ids(self) -> None:
        """Different URIs (even near-identical ones) yield different IDs."""
        uris = [f"{URI}{i}" for i in range(500)] + [URI, URI + "/", URI.upper()]
        ids = {derive_id(u) for u in uris}
        assert len(ids) == len(uris)

    def test_base_id_is_url_safe_without_padding(self) -> None:
        """Only A-Z a-z 0-9 - _ and no '=' padding."""
        base = derive_base_id(URI)
        assert URL_SAFE.match(base)
        assert "=" not in base

    def test_chunk_suffix_fits_in_64_bytes(self) -> None:
        """base + ':c99' stays within the storage key limit, even for very long URIs."""
        long_uri = "at://did:plc:" + "x" * 5000 + "/app.greengale.document/" + "é" * 300
        for uri in (URI, long_uri, "a"):
            assert len((derive_id(uri) + ":c99").encode()) <= MAX_VECTOR_ID_BYTES

    def test_chunk_zero_and_none_are_base(self) -> None:
        """Chunk index 0/None maps to the unsuffixed base ID."""
        assert derive_id(URI, 0) == derive_base_id(URI)
        assert derive_id(URI, None) == derive_base_id(URI)

    def test_chunk_suffix_format(self) -> None:
        """Chunk N >= 1 is '<base>:c<N>'."""
        assert derive_id(URI, 3) == f"{derive_base_id(URI)}:c3"

    def test_negative_chunk_index_rejected(self) -> None:
        with pytest.raises(IdentityDerivationError):
            derive_id(URI, -1)

    @pytest.mark.parametrize("bad", ["", "   ", "at://did\n/x", "tab\there"])
    def test_malformed_uri_rejected(self, bad: str) -> None:
        """Empty or control-character URIs fail as validation errors."""
        with pytest.raises(IdentityDerivationError):
            derive_base_id(bad)

    def test_identity_error_is_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            derive_id("")


class TestDeriveAllIds:
    def test_length_and_elements(self) -> None:
        """deriveAllIds(u, n): length n, [0] is the base, [i] is base + ':c' + i."""
        ids = derive_all_ids(URI, 5)
        base = derive_id(URI)
        assert len(ids) == 5
        assert ids[0] == base
        for i in range(1, 5):
            assert ids[i] == f"{base}:c{i}"

    def test_default_covers_twenty_ids(self) -> None:
        ids = derive_all_ids(URI)
        assert len(ids) == 20
        assert ids[-1].endswith(":c19")

    def test_single_id(self) -> None:
        assert derive_all_ids(URI, 1) == [derive_id(URI)]

    def test_zero_count_rejected(self) -> None:
        with pytest.raises(IdentityDerivationError):
            derive_all_ids(URI, 0)


def test_derive_chunk_index_round_trip() -> None:
    """Chunk ordinals can be read back from IDs (0 for base)."""
    assert derive_chunk_index(derive_id(URI)) == 0
    assert derive_chunk_index(derive_id(URI, 7)) == 7
    with pytest.raises(IdentityDerivationError):
        derive_chunk_index("abc:cX")


def test_ensure_id_within_limit() -> None:
    assert ensure_id_within_limit("a" * 64) == "a" * 64
    with pytest.raises(IdentityDerivationError):
        ensure_id_within_limit("a" * 65)
