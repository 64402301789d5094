from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from price_catalog.domain.errors import ValidationFailed
from price_catalog.domain.models import (
    Category,
    PriceFilter,
    PricePatch,
    PriceRecord,
    Source,
    parse_draft,
    parse_patch,
)


class TestPriceRecord:
    def test_reads_camel_case_wire_format(self, sample_rows):
        record = PriceRecord.model_validate(sample_rows[0])
        assert record.id == "p1"
        assert record.item_name == "Sign A"
        assert record.unit_price == Decimal("15000")
        assert record.irc_reference == ["IRC:67-2022"]
        assert isinstance(record.last_verified, datetime)
        assert record.verified_at == record.last_verified

    def test_accepts_mongo_style_id(self):
        record = PriceRecord.model_validate({"_id": "65f0c0ffee", "itemName": "Stud"})
        assert record.id == "65f0c0ffee"

    @pytest.mark.parametrize("raw", [None, "", "abc", -5, "NaN", True])
    def test_bad_price_degrades_to_none(self, raw):
        record = PriceRecord.model_validate({"id": "x", "itemName": "Cone", "unitPrice": raw})
        assert record.unit_price is None
        assert record.price_or_zero == Decimal(0)

    def test_invalid_timestamp_is_kept_raw(self):
        record = PriceRecord.model_validate(
            {"id": "x", "itemName": "Cone", "lastVerified": "last tuesday"}
        )
        assert record.last_verified == "last tuesday"
        assert record.verified_at is None

    def test_references_are_trimmed_and_blanks_dropped(self):
        record = PriceRecord.model_validate(
            {"id": "x", "itemName": "Cone", "ircReference": [" IRC:79 ", "", "  ", "IRC:79"]}
        )
        assert record.irc_reference == ["IRC:79", "IRC:79"]

    def test_missing_source_defaults_to_manual(self):
        record = PriceRecord.model_validate({"id": "x", "itemName": "Cone", "source": None})
        assert record.source == Source.MANUAL.value

    def test_records_are_immutable(self, sample_records):
        with pytest.raises(Exception):
            sample_records[0].unit_price = Decimal(1)


class TestPriceFilter:
    def test_blank_fields_mean_no_constraint(self):
        price_filter = PriceFilter(text="  ", category="", source=None)
        assert price_filter == PriceFilter()
        assert price_filter.to_params() == {"query": ""}

    def test_params_include_exact_filters(self):
        price_filter = PriceFilter(text="sign", category=Category.SIGNAGE, source="GeM")
        assert price_filter.to_params() == {"query": "sign", "category": "signage", "source": "GeM"}


class TestParseDraft:
    def test_valid_draft_gets_defaults(self):
        draft = parse_draft({"itemName": " Cat eye ", "unitPrice": "120.50"})
        assert draft.item_name == "Cat eye"
        assert draft.unit_price == Decimal("120.50")
        assert draft.category == "other"
        assert draft.source == "MANUAL"
        assert draft.unit == "nos"

    @pytest.mark.parametrize(
        "data",
        [
            {"itemName": "", "unitPrice": 100},
            {"itemName": "   ", "unitPrice": 100},
            {"unitPrice": 100},
            {"itemName": "Cone"},
            {"itemName": "Cone", "unitPrice": "twelve"},
            {"itemName": "Cone", "unitPrice": -1},
            {"itemName": "Cone", "unitPrice": "NaN"},
        ],
    )
    def test_rejects_missing_or_bad_required_fields(self, data):
        with pytest.raises(ValidationFailed) as excinfo:
            parse_draft(data)
        assert excinfo.value.problems

    def test_server_assigned_fields_are_dropped(self):
        draft = parse_draft(
            {"id": "p9", "createdAt": "2026-01-01", "itemName": "Cone", "unitPrice": 10}
        )
        payload = draft.to_payload()
        assert "id" not in payload
        assert "createdAt" not in payload

    def test_payload_uses_wire_names_and_numbers(self):
        payload = parse_draft(
            {"item_name": "Cone", "unit_price": "10.5", "irc_reference": ["IRC:SP:55"]}
        ).to_payload()
        assert payload["itemName"] == "Cone"
        assert payload["unitPrice"] == 10.5
        assert payload["ircReference"] == ["IRC:SP:55"]

    def test_integral_price_is_sent_as_int(self):
        assert parse_draft({"itemName": "Cone", "unitPrice": "100.00"}).to_payload()["unitPrice"] == 100


class TestParsePatch:
    def test_non_editable_fields_are_ignored(self):
        patch = parse_patch({"id": "other", "createdAt": "2020-01-01", "unitPrice": 99})
        assert patch.model_fields_set == {"unit_price"}
        assert patch.to_payload("p1") == {"id": "p1", "unitPrice": 99}

    def test_patch_with_only_non_editable_fields_is_empty(self):
        patch = parse_patch({"id": "p1", "createdAt": "2020-01-01"})
        assert patch.is_empty
        assert patch.to_payload("p1") == {"id": "p1"}

    @pytest.mark.parametrize(
        "data",
        [{"unitPrice": -3}, {"unitPrice": "x"}, {"itemName": ""}, {"itemName": None}],
    )
    def test_rejects_bad_values(self, data):
        with pytest.raises(ValidationFailed):
            parse_patch(data)

    def test_existing_patch_passes_through(self):
        patch = PricePatch(unit="rmt")
        assert parse_patch(patch) is patch
