import pytest

from libs.wbi import (
    build_sign_query,
    calc_w_rid,
    encode_query,
    encode_uri_component,
    get_mixin_key,
    sign_params,
)

IMG_KEY = "7cd084941338484aae1ad9425b84077c"
SUB_KEY = "4932caff0ff746eab6f01bf08b70ac45"
MIXIN_KEY = "ea1db124af3c7062474693fa704f4ff8"


class TestMixinKey:
    def test_known_vector(self):
        assert get_mixin_key(IMG_KEY, SUB_KEY) == MIXIN_KEY

    def test_rejects_short_fragments(self):
        with pytest.raises(ValueError):
            get_mixin_key("abc", SUB_KEY)


class TestEncoding:
    def test_encode_uri_component(self):
        assert encode_uri_component("a b&c=d") == "a%20b%26c%3Dd"
        assert encode_uri_component("~-_.!*'()") == "~-_.!*'()"
        assert encode_uri_component("中") == "%E4%B8%AD"

    def test_encode_query_keeps_order(self):
        assert encode_query({"b": 1, "a": "x y"}) == "b=1&a=x%20y"


class TestSign:
    def test_sign_query_sorted_and_filtered(self):
        query = build_sign_query({"foo": "114", "bar": "5!1(4)", "zab": 1919810}, 1702204169)
        assert query == "bar=514&foo=114&wts=1702204169&zab=1919810"

    def test_known_w_rid(self):
        params = {"foo": "114", "bar": "514", "zab": 1919810}
        assert calc_w_rid(params, 1702204169, MIXIN_KEY) == "8f6f2b5b3d485fe1886cec6a0be8c5d4"

    def test_sign_params_appends_signature(self):
        params = {"foo": "114", "bar": "514", "zab": 1919810}
        signed = sign_params(params, IMG_KEY, SUB_KEY, wts=1702204169)
        assert signed == {
            "foo": "114",
            "bar": "514",
            "zab": 1919810,
            "w_rid": "8f6f2b5b3d485fe1886cec6a0be8c5d4",
            "wts": 1702204169,
        }
        assert "w_rid" not in params

    def test_signature_changes_with_timestamp(self):
        params = {"mid": "2"}
        first = sign_params(params, IMG_KEY, SUB_KEY, wts=1700000000)
        second = sign_params(params, IMG_KEY, SUB_KEY, wts=1700000001)
        assert first["w_rid"] != second["w_rid"]

    def test_empty_params(self):
        signed = sign_params({}, IMG_KEY, SUB_KEY, wts=1700000000)
        assert set(signed) == {"w_rid", "wts"}
        assert len(signed["w_rid"]) == 32
