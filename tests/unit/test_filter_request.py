import pytest
from pydantic import ValidationError

from order_index.schemas.filter_request import FilterRequest, SubscriptionOrderBy
from order_index.services.query_rewriter import rewrite_join, rewrite_orderby, rewrite_where

pytestmark = pytest.mark.grp_query

DEFAULT = "r.created_at DESC"


def test_blank_values_are_absent():
    flt = FilterRequest(customer_email="  ", customer_name="", customer_user=0, order_id="#")
    assert flt.is_empty
    assert flt.criteria() == {}


def test_customer_user_parsing():
    assert FilterRequest(customer_user="12").customer_user == 12
    assert FilterRequest(customer_user=-3).customer_user is None
    with pytest.raises(ValidationError):
        FilterRequest(customer_user="abc")


def test_legacy_aliases():
    assert FilterRequest.model_validate(
        {"meta_key": "_customer_user", "meta_value": "7"}
    ).customer_user == 7
    assert FilterRequest.model_validate({"customer": 9}).customer_user == 9
    # 其他 meta_key 不映射
    assert FilterRequest.model_validate({"meta_key": "_foo", "meta_value": "7"}).is_empty
    # 显式字段优先
    assert FilterRequest.model_validate({"customer_user": 3, "customer": 9}).customer_user == 3


def test_order_id_hash_is_stripped():
    assert FilterRequest(order_id="#1001").order_id == "1001"


@pytest.mark.parametrize(
    "value, expected",
    [
        ("next_payment_date", ("next_payment_date", "ASC")),
        ("next_payment_date desc", ("next_payment_date", "DESC")),
        ("order_total:DESC", ("order_total", "DESC")),
        ({"field": "end_date", "direction": "desc"}, ("end_date", "DESC")),
        ({"column": "start_date", "order": "asc"}, ("start_date", "ASC")),
        (("trial_end_date", "desc"), ("trial_end_date", "DESC")),
    ],
)
def test_subscription_orderby_accepted(value, expected):
    ob = SubscriptionOrderBy.parse(value)
    assert (ob.column, ob.direction) == expected


@pytest.mark.parametrize(
    "value",
    [
        "subscription_id",
        "customer_email",
        "next_payment_date sideways",
        "a b c",
        {"field": "bogus"},
        42,
        "",
    ],
)
def test_subscription_orderby_rejected(value):
    assert SubscriptionOrderBy.parse(value) is None
    flt = FilterRequest(subscription_orderby=value)
    assert flt.subscription_orderby is None
    assert rewrite_orderby(flt, DEFAULT) == DEFAULT
    assert rewrite_join(flt) == ""


def test_join_only_for_present_criteria():
    assert rewrite_join(FilterRequest()) == ""

    only_sort = rewrite_join(FilterRequest(subscription_orderby="next_payment_date"))
    assert "subscription_index AS csi" in only_sort
    assert "customer_order_index" not in only_sort

    both = rewrite_join(
        FilterRequest(customer_user=5, subscription_orderby="order_total desc"), source="r"
    )
    assert "INNER JOIN customer_order_index AS coi ON r.id = coi.order_id" in both
    assert "INNER JOIN subscription_index AS csi ON r.id = csi.subscription_id" in both


def test_orderby_replaces_default_only_with_subscription_sort():
    flt = FilterRequest(subscription_orderby="next_payment_date desc")
    assert rewrite_orderby(flt, DEFAULT) == "csi.next_payment_date DESC"
    assert rewrite_orderby(FilterRequest(customer_user=1), DEFAULT) == DEFAULT


def test_where_customer_user_is_exact():
    frag = rewrite_where(FilterRequest(customer_user=5))
    assert frag.sql == "coi.user_id = :coi_0"
    assert frag.params == {"coi_0": 5}
    assert frag.as_and() == " AND coi.user_id = :coi_0"


def test_where_empty_filter():
    frag = rewrite_where(FilterRequest())
    assert not frag
    assert frag.as_and() == ""


def test_where_order_id_numeric_and_alpha():
    numeric = rewrite_where(FilterRequest(order_id="1001"))
    assert numeric.sql == "(coi.order_id = :coi_0 OR coi.order_number = :coi_1)"
    assert numeric.params == {"coi_0": 1001, "coi_1": "1001"}

    alpha = rewrite_where(FilterRequest(order_id="WC-77"))
    assert alpha.sql == "coi.order_number = :coi_0"
    assert alpha.params == {"coi_0": "wc-77"}


def test_where_full_search_numeric_tokens_probe_id_columns():
    frag = rewrite_where(FilterRequest(full_search="acme 42"))
    # 两个词之间 AND
    assert frag.sql.startswith("((")
    assert ") AND (" in frag.sql
    # 只有数字词才碰 order_id / user_id
    assert frag.sql.count("CAST(coi.order_id AS TEXT)") == 1
    assert frag.sql.count("CAST(coi.user_id AS TEXT)") == 1
    assert len(frag.params) == 10 + 12
    assert set(frag.params.values()) == {"%acme%", "%42%"}


def test_where_full_search_star_only_tokens_are_ignored():
    assert not rewrite_where(FilterRequest(full_search="* **"))


def test_where_param_prefix():
    frag = rewrite_where(FilterRequest(customer_user=5), param_prefix="q")
    assert frag.params == {"q_0": 5}


def test_where_full_search_alnum_token_skips_id_columns():
    frag = rewrite_where(FilterRequest(full_search="ab42"))
    assert "order_id" not in frag.sql
    assert "user_id" not in frag.sql
    assert set(frag.params.values()) == {"%ab42%"}
