from __future__ import annotations

import pytest

from rules.layers import (
    DEFAULT_LAYER_REFERENCES,
    is_layer_violation,
    layer_rank,
    layer_references,
)


@pytest.mark.parametrize(
    ("identifier", "rank"),
    [
        ("Domain", 0),
        ("shop.Domain.orders", 0),
        ("shop.application", 1),
        ("Shop.Infrastructure.Db", 2),
        ("web.Presentation", 3),
        ("shop.utils", 4),
    ],
)
def test_layer_rank_matches_whole_segments_case_insensitively(
    identifier: str, rank: int
) -> None:
    assert layer_rank(identifier) == rank


def test_layer_rank_ignores_partial_segment_matches() -> None:
    assert layer_rank("shop.DomainEvents") == 4
    assert layer_rank("myapplication.core") == 4


def test_layer_rank_first_listed_layer_wins() -> None:
    assert layer_rank("Presentation.Domain") == 0


def test_layer_rank_with_custom_order() -> None:
    order = ["Core", "Adapters"]

    assert layer_rank("svc.core.model", order) == 0
    assert layer_rank("svc.adapters.http", order) == 1
    assert layer_rank("svc.Domain", order) == 2


def test_infrastructure_dependency_violates_domain_target() -> None:
    assert is_layer_violation("shop.Infrastructure.db", "shop.Domain") is True


def test_domain_dependency_is_allowed_for_infrastructure_target() -> None:
    assert is_layer_violation("shop.Domain.models", "shop.Infrastructure") is False


def test_same_layer_is_not_a_violation() -> None:
    assert is_layer_violation("shop.utils", "shop.helpers") is False


def test_layer_references_table() -> None:
    assert layer_references("Domain") == ()
    assert layer_references("Application") == ("Domain",)
    assert layer_references("Infrastructure") == ("Application", "Domain")
    assert layer_references("Presentation") == ("Application",)
    assert layer_references("Reporting") == ()
    assert layer_references("Edge", {"Edge": ["Core"]}) == ("Core",)
    assert "Domain" not in DEFAULT_LAYER_REFERENCES
