from merkl_mcp.merkl_api.query import encode_query


def test_empty_filters_encode_to_empty_string():
    assert encode_query({}) == ""
    assert encode_query(None) == ""


def test_unset_values_are_skipped():
    assert encode_query({"name": None, "search": "", "tokenTypes": []}) == ""


def test_zero_and_false_are_kept():
    assert encode_query({"page": 0, "test": False}) == "?page=0&test=false"


def test_insertion_order_is_preserved():
    assert encode_query({"items": 5, "chainId": "1,42161", "order": "desc"}) == (
        "?items=5&chainId=1%2C42161&order=desc"
    )


def test_list_matches_comma_joined_string():
    as_list = encode_query({"tokenTypes": ["TOKEN", "POINT"]})
    as_string = encode_query({"tokenTypes": "TOKEN,POINT"})
    assert as_list == as_string == "?tokenTypes=TOKEN%2CPOINT"


def test_numbers_render_like_json():
    assert encode_query({"minimumTvl": 1000.0, "minimumApr": 1.5}) == "?minimumTvl=1000&minimumApr=1.5"


def test_spaces_are_form_encoded():
    assert encode_query({"name": "USDC vault", "test": True}) == "?name=USDC+vault&test=true"


def test_floats_render_like_javascript_numbers():
    assert encode_query({"a": 0.00001, "b": 1e21, "c": 1e-7}) == "?a=0.00001&b=1e%2B21&c=1e-7"
    assert encode_query({"maximumApr": 123456.789, "minimumApr": -0.5}) == "?maximumApr=123456.789&minimumApr=-0.5"


def test_tilde_is_percent_encoded():
    assert encode_query({"c": "x~y"}) == "?c=x%7Ey"
