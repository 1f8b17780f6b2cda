"""Tests for residual grant computation and the reference tables behind it."""

import json

import pytest

from conftest import make_grant
from grantdb.core.errors import ReferenceDataError
from grantdb.reconcile.reference import (
    ReferenceTables,
    load_reference_tables,
    published_total,
)
from grantdb.reconcile.residuals import ResidualPolicy, compute_residuals


def _alpha_tables(total=10_000_000, hints=None):
    return ReferenceTables.from_dicts({"Alpha": {"2024": total}}, hints or {"Alpha": "LTXR"})


def _alpha_grants(*amounts):
    return [
        make_grant(id=f"a-{i}", grantmaker="Alpha", amount=a, date="2024-05-01")
        for i, a in enumerate(amounts)
    ]


class TestComputeResiduals:

    def test_material_gap_produces_residual(self):
        """$10M published, $7M itemized → one $3M residual."""
        result = compute_residuals(_alpha_grants(4_000_000, 3_000_000), _alpha_tables())

        assert len(result.residuals) == 1
        r = result.residuals[0]
        assert r.amount == 3_000_000
        assert r.is_residual
        assert r.id == "residual-alpha-2024"
        assert r.date == "2024-07-01"
        assert r.grantmaker == "Alpha"
        assert r.category == "LTXR"
        assert r.recipient == "Various recipients"
        assert r.title == "Unitemized 2024 Grants"
        assert r.residual_note == (
            "Published total: $10.0M, Itemized: $7.0M, Unitemized: $3.0M (30%)"
        )

    def test_gap_over_100k_but_under_5_percent(self):
        """$300K gap is 3% of $10M: not material."""
        result = compute_residuals(_alpha_grants(9_700_000), _alpha_tables())
        assert result.residuals == []

    def test_gap_over_5_percent_but_under_100k(self):
        result = compute_residuals(_alpha_grants(1_000_000), _alpha_tables(total=1_090_000))
        assert result.residuals == []

    def test_gap_of_exactly_100k_not_material(self):
        result = compute_residuals(_alpha_grants(900_000), _alpha_tables(total=1_000_000))
        assert result.residuals == []

    def test_gap_of_exactly_5_percent_not_material(self):
        """$200K of $4M is 5%: not strictly above the threshold."""
        result = compute_residuals(_alpha_grants(3_800_000), _alpha_tables(total=4_000_000))
        assert result.residuals == []

    @pytest.mark.parametrize("residual,published,expected", [
        (100_000, 1_000_000, False),
        (100_001, 1_000_000, True),
        (200_000, 4_000_000, False),
        (200_001, 4_000_000, True),
        (500_000, 0, False),
    ])
    def test_is_material_is_strict(self, residual, published, expected):
        assert ResidualPolicy().is_material(residual, published) is expected

    def test_overcoverage_never_negative(self):
        result = compute_residuals(_alpha_grants(12_000_000), _alpha_tables())
        assert result.residuals == []

    def test_no_itemized_grants_means_full_residual(self):
        r = compute_residuals([], _alpha_tables()).residuals[0]
        assert r.amount == 10_000_000
        assert r.residual_note.endswith("(100%)")

    def test_excluded_and_other_years_ignored(self):
        grants = _alpha_grants(4_000_000) + [
            make_grant(id="x", grantmaker="Alpha", amount=5_000_000, date="2024-02-01",
                       exclude_from_total=True),
            make_grant(id="y", grantmaker="Alpha", amount=5_000_000, date="2023-02-01"),
        ]
        r = compute_residuals(grants, _alpha_tables()).residuals[0]
        assert r.amount == 6_000_000

    def test_existing_residuals_not_counted_as_itemized(self):
        grants = _alpha_grants(7_000_000) + [
            make_grant(id="residual-alpha-2024", grantmaker="Alpha", amount=3_000_000,
                       date="2024-07-01", is_residual=True),
        ]
        r = compute_residuals(grants, _alpha_tables()).residuals[0]
        assert r.amount == 3_000_000

    def test_deterministic(self):
        grants = _alpha_grants(2_000_000)
        first = compute_residuals(grants, _alpha_tables())
        second = compute_residuals(grants, _alpha_tables())
        assert [g.to_dict() for g in first.residuals] == [g.to_dict() for g in second.residuals]

    def test_comment_and_placeholder_entries_skipped(self, reference_tables):
        result = compute_residuals([], reference_tables)
        ids = [r.id for r in result.residuals]
        assert ids == [
            "residual-givewell-2022",
            "residual-givewell-2023",
            "residual-founders-pledge-2023",
        ]

    def test_unknown_grantmaker_category_defaults_to_other(self):
        r = compute_residuals([], _alpha_tables(hints={"Someone Else": "GH"})).residuals[0]
        assert r.category == "Other"

    def test_stats(self, reference_tables):
        stats = compute_residuals([], reference_tables).stats
        assert stats.generated == 3
        assert stats.by_grantmaker["GiveWell"].years == 2
        assert stats.by_grantmaker["GiveWell"].total_residual == 20_000_000
        assert stats.to_dict()["byGrantmaker"]["Founders Pledge"]["years"] == 1

    def test_custom_policy(self):
        policy = ResidualPolicy(min_amount=0, min_fraction=0.01)
        result = compute_residuals(_alpha_grants(9_700_000), _alpha_tables(), policy)
        assert result.residuals[0].amount == pytest.approx(300_000)


class TestReferenceTables:

    def test_tables_are_read_only(self, reference_tables):
        with pytest.raises(TypeError):
            reference_tables.published_totals["New"] = {}
        with pytest.raises(TypeError):
            reference_tables.published_totals["GiveWell"]["2025"] = 1

    def test_published_total(self, reference_tables):
        assert published_total(reference_tables, "GiveWell", "2023") == 10_000_000
        assert published_total(reference_tables, "Founders Pledge", "2024") is None
        assert published_total(reference_tables, "Nobody", "2023") is None

    def test_non_digit_years_skipped(self):
        tables = ReferenceTables.from_dicts({"Alpha": {"FY2024": 5_000_000, "2024": True}})
        assert compute_residuals([], tables).residuals == []

    def test_load_from_files(self, tmp_path):
        totals = tmp_path / "totals.json"
        hints = tmp_path / "hints.json"
        totals.write_text(json.dumps({"_source": "annual reports", "Alpha": {"2024": 1_000_000}}))
        hints.write_text(json.dumps({"_comment": "x", "Alpha": "AW"}))

        tables = load_reference_tables(totals, hints)
        assert dict(tables.category_hints) == {"Alpha": "AW"}
        assert compute_residuals([], tables).residuals[0].category == "AW"

    def test_packaged_tables_load(self):
        tables = load_reference_tables()
        assert "GiveWell" in tables.published_totals

    def test_invalid_json_raises(self, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        with pytest.raises(ReferenceDataError):
            load_reference_tables(bad, bad)

    def test_non_object_raises(self, tmp_path):
        bad = tmp_path / "list.json"
        bad.write_text("[1, 2]")
        with pytest.raises(ReferenceDataError):
            load_reference_tables(bad, bad)
