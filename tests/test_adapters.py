"""Tests for the source adapters, fed raw text instead of live feeds."""

from unittest.mock import MagicMock

import pytest

from grantdb.core.errors import SourceFetchError
from grantdb.ingest import (
    CoefficientGivingAdapter,
    EAFundsAdapter,
    GiveWellAdapter,
    SFFAdapter,
    default_adapters,
)
from grantdb.ingest.coefficient_giving import map_focus_area
from grantdb.ingest.sff import round_to_date
from grantdb.pipeline import run_adapters
from grantdb.storage.snapshot_store import SnapshotStore


EAF_CSV = "\ufeff" + """id,fund,description,grantee,amount,round,published,year,highlighted
101,Long-Term Future Fund,Research on interpretability,Jane Doe,"$45,000",2025 Q3,2025-08-01,2025,false
102,Animal Welfare Fund,Cage-free outreach,Open Wing Alliance,120000,,2024-02-01,2024,false
103,EA Infrastructure Fund,Community building,Local Group,not disclosed,2024 Q1,,2024,false
104,Global Health and Development Fund,Nets,,30000,,,2023,false
"""

CG_CSV = """Grant,Organization Name,Focus Area,Amount,Date,Details
AI Safety Research,Center for AI Safety,Navigating Transformative AI,"$5,000,000",March 2024,
Malaria Nets,Against Malaria Foundation,GiveWell-Recommended Charities,"$10,000,000",2024-02-10,
Cage-free,The Humane League,Farm Animal Welfare,"$1,000,000",unknown,
Land reform,YIMBY Action,Housing Abundance,"$-20,000",2024-02-10,
"""

SFF_HTML = """
<html><body>
<table>
  <tr><th>Round</th><th>Source</th><th>Organization</th><th>Amount</th><th>Receiving Charity</th><th>Purpose</th></tr>
  <tr><td>SFF-2024-H2</td><td>Jaan Tallinn</td><td>MIRI</td><td>$1,200,000</td><td>MIRI</td><td>General support</td></tr>
  <tr><td>SFF-2023-H1</td><td>Jed McCaleb</td><td>FAR AI</td><td>$500,000 +$100,000‡</td><td>Fiscal Sponsor Inc</td><td></td></tr>
  <tr><td>SFF-2022</td><td>Jaan Tallinn</td><td>Some Org</td><td>TBD</td></tr>
  <tr><td>only</td><td>three</td><td>cells</td></tr>
</table>
</body></html>
"""

GW_CSV = """Grant,Recipient,Amount,Date,Link to grant description,Topics,Funders,Countries
Malaria Consortium SMC 2024,Malaria Consortium,"$25,000,000",2024-01-15,https://www.givewell.org/smc,"Malaria, SMC","GiveWell, Open Philanthropy",Nigeria
New Incentives,New Incentives,-5,2024-02-01,,,,
"""


class TestEAFundsAdapter:

    def _parse(self):
        adapter = EAFundsAdapter(fund_categories={"Long-Term Future Fund": "LTXR", "Animal Welfare Fund": "AW"})
        return adapter.parse(EAF_CSV)

    def test_valid_rows_parsed(self):
        result = self._parse()
        assert [g.id for g in result.grants] == ["eaf-00000", "eaf-00001", "eaf-00003"]

        first = result.grants[0]
        assert first.amount == 45_000
        assert first.date == "2025-07-01"
        assert first.category == "LTXR"
        assert first.grantmaker == "EA Funds"
        assert first.source_id == "101"

    def test_year_fallback_for_missing_round(self):
        assert self._parse().grants[1].date == "2024-07-01"

    def test_anonymous_grantee(self):
        grant = self._parse().grants[2]
        assert grant.recipient == "Anonymous"
        assert grant.category == "Other"

    def test_bad_rows_reported(self):
        result = self._parse()
        assert len(result.errors) == 1
        assert "Row 2" in result.errors[0]
        assert "not disclosed" in result.errors[0]


class TestCoefficientGivingAdapter:

    def _parse(self):
        adapter = CoefficientGivingAdapter(focus_areas={
            "Navigating Transformative AI": "LTXR",
            "GiveWell-Recommended Charities": "GH",
        })
        return adapter.parse(CG_CSV)

    def test_parsed_and_flagged(self):
        result = self._parse()
        assert [g.recipient for g in result.grants] == ["Center for AI Safety", "Against Malaria Foundation"]

        ai, nets = result.grants
        assert ai.date == "2024-03-01"
        assert ai.category == "LTXR"
        assert not ai.exclude_from_total
        assert nets.exclude_from_total
        assert nets.category == "GH"

    def test_bad_rows_reported(self):
        errors = self._parse().errors
        assert len(errors) == 2
        assert any("invalid date" in e for e in errors)
        assert any("invalid amount" in e for e in errors)

    @pytest.mark.parametrize("focus_area,expected", [
        ("Navigating Transformative AI", "LTXR"),
        ("Farm Animal Welfare (Asia)", "AW"),
        ("Pandemic preparedness", "LTXR"),
        ("Housing", "Other"),
        ("", "Other"),
    ])
    def test_map_focus_area(self, focus_area, expected):
        mapping = {"Navigating Transformative AI": "LTXR", "Farm Animal Welfare": "AW"}
        assert map_focus_area(focus_area, mapping) == expected


class TestSFFAdapter:

    def test_rows_parsed(self):
        result = SFFAdapter().parse(SFF_HTML)
        assert [g.recipient for g in result.grants] == ["MIRI", "FAR AI"]

        miri, far = result.grants
        assert miri.amount == 1_200_000
        assert miri.date == "2024-09-01"
        assert miri.category == "LTXR"
        assert miri.fund == "Jaan Tallinn"
        assert far.amount == 500_000
        assert far.date == "2023-03-01"
        assert "Receiving charity: Fiscal Sponsor Inc" in far.description

    def test_bad_amount_reported(self):
        errors = SFFAdapter().parse(SFF_HTML).errors
        assert len(errors) == 1
        assert "TBD" in errors[0]

    @pytest.mark.parametrize("round_text,expected", [
        ("SFF-2025", "2025-07-01"),
        ("SFF-2024-H1", "2024-03-01"),
        ("SFF-2024-H2", "2024-09-01"),
        ("2023 Q4", "2023-09-01"),
        ("Initiative Committee", None),
    ])
    def test_round_to_date(self, round_text, expected):
        assert round_to_date(round_text) == expected


class TestGiveWellAdapter:

    def test_rows_parsed(self, tmp_path):
        path = tmp_path / "givewell.csv"
        path.write_text(GW_CSV, encoding="utf-8")

        result = GiveWellAdapter(csv_path=path).run()
        assert len(result.grants) == 1
        grant = result.grants[0]
        assert grant.amount == 25_000_000
        assert grant.funders == ["GiveWell", "Coefficient Giving (via GiveWell)"]
        assert grant.topics == ["Malaria", "SMC"]
        assert grant.country == "Nigeria"
        assert grant.category == "GH"
        assert len(result.errors) == 1

    def test_missing_file_degrades(self, tmp_path):
        result = GiveWellAdapter(csv_path=tmp_path / "missing.csv").run()
        assert result.grants == []
        assert len(result.errors) == 1
        assert "Manual download" in result.errors[0]


class TestAdapterRun:
    """Fetch failures become an empty, errored result."""

    def test_fetch_error_degrades(self):
        fetcher = MagicMock()
        fetcher.fetch_text.side_effect = SourceFetchError("https://example.org", "HTTP 503: Service Unavailable", 503)

        result = SFFAdapter(fetcher=fetcher).run()
        assert result.source == "sff"
        assert result.grants == []
        assert "503" in result.errors[0]

    def test_raw_payload_snapshotted(self):
        fetcher = MagicMock()
        fetcher.fetch_text.return_value = SFF_HTML
        snapshots = MagicMock()

        result = SFFAdapter(fetcher=fetcher, snapshots=snapshots).run()
        assert len(result.grants) == 2
        snapshots.save_raw.assert_called_once_with("sff", SFF_HTML, "html")

    def test_unwritable_snapshot_dir_keeps_grants(self, tmp_path):
        blocker = tmp_path / "raw"
        blocker.write_text("not a directory")
        fetcher = MagicMock()
        fetcher.fetch_text.return_value = SFF_HTML

        adapter = SFFAdapter(fetcher=fetcher, snapshots=SnapshotStore(blocker / "nested"))
        result = run_adapters([adapter])[0]
        assert len(result.grants) == 2
        assert len(result.errors) == 1

    def test_default_adapters_filter(self):
        adapters = default_adapters(names=["sff", "givewell"])
        assert [a.name for a in adapters] == ["sff", "givewell"]

    def test_default_adapters_unknown(self):
        with pytest.raises(ValueError):
            default_adapters(names=["nope"])
