"""
Unit tests for the legislative normalizer
"""

from datetime import date

import pytest
from core.exceptions import DataFormatError
from ingestion.transformers.normalizer import LegislativeNormalizer


@pytest.fixture
def normalizer():
    return LegislativeNormalizer()


class TestLegislators:

    def test_house_member(self, normalizer, raw):
        record = raw.member("A000370", "Adams, Alma S.", "North Carolina", "Democratic",
                            "House of Representatives", 12)

        legislator = normalizer.legislator(record)

        assert legislator.id == "A000370"
        assert legislator.first_name == "Alma"
        assert legislator.middle_name == "S."
        assert legislator.last_name == "Adams"
        assert legislator.party == "D"
        assert legislator.chamber == "HOUSE"
        assert legislator.state == "NC"
        assert legislator.district == 12
        assert legislator.in_office is True

    def test_senator_has_no_district(self, normalizer, raw):
        record = raw.member("C001098", "Cruz, Ted", "Texas", "Republican", "Senate")
        record["district"] = 3

        legislator = normalizer.legislator(record)

        assert legislator.chamber == "SENATE"
        assert legislator.district is None

    def test_latest_term_decides_chamber(self, normalizer, raw):
        record = raw.member("S000033", "Sanders, Bernard", "Vermont", "Independent", "House of Representatives")
        record["terms"]["item"].append({"chamber": "Senate", "startYear": 2007})
        record["terms"]["item"][0]["startYear"] = 1991

        assert normalizer.legislator(record).chamber == "SENATE"

    def test_historical_member(self, normalizer, raw):
        record = raw.member("E000068", "Edwards, John", "North Carolina", "Democratic", "Senate")
        assert normalizer.legislator(record, in_office=False).in_office is False

    def test_unknown_state_maps_to_placeholder(self, normalizer, raw):
        record = raw.member("X000001", "Doe, Jane", "Atlantis", "Democratic", "Senate")
        assert normalizer.legislator(record).state == "XX"

    def test_missing_bioguide_id(self, normalizer):
        with pytest.raises(DataFormatError):
            normalizer.legislator({"name": "Nobody"})


class TestCommittees:

    def test_subcommittee_keeps_parent(self, normalizer, raw):
        record = raw.committee("hsag15", "Conservation Subcommittee", committee_type="Subcommittee", parent="hsag00")

        committee = normalizer.committee(record)

        assert committee.id == "hsag15"
        assert committee.committee_type == "SUBCOMMITTEE"
        assert committee.parent_id == "hsag00"
        assert committee.chamber == "HOUSE"

    def test_blank_name_is_rejected(self, normalizer, raw):
        with pytest.raises(DataFormatError):
            normalizer.committee(raw.committee("hsxx00", "   "))

    def test_missing_system_code(self, normalizer):
        with pytest.raises(DataFormatError):
            normalizer.committee({"name": "Orphan"})


class TestBills:

    def test_bill(self, normalizer, raw):
        bill = normalizer.bill(raw.bill(118, "hr", 1234, title="  Lower Energy Costs Act  "))

        assert bill.id == "hr-1234-118"
        assert bill.congress_number == 118
        assert bill.bill_type == "HR"
        assert bill.bill_number == 1234
        assert bill.title == "Lower Energy Costs Act"
        assert bill.status == "IN_COMMITTEE"
        assert bill.origin_chamber == "HOUSE"
        assert bill.introduced_date == date(2023, 1, 9)
        assert bill.last_action_date == date(2023, 2, 1)

    def test_missing_number(self, normalizer):
        with pytest.raises(DataFormatError):
            normalizer.bill({"congress": 118, "type": "HR"})


class TestRollCalls:

    def test_roll_call_links_bill(self, normalizer, raw):
        detail = raw.vote_detail(118, 1, 17, result="Passed", bill=("HR", "2"))
        detail.update({"totalYea": "218", "totalNay": 210})

        roll_call = normalizer.roll_call(detail)

        assert roll_call.id == "h118-1-17"
        assert roll_call.bill_id == "hr-2-118"
        assert roll_call.result == "PASSED"
        assert roll_call.vote_category == "PASSAGE"
        assert roll_call.question == "On Passage"
        assert roll_call.yeas == 218
        assert roll_call.nays == 210
        assert roll_call.vote_date == date(2023, 1, 9)

    def test_only_bill_legislation_is_linked(self, normalizer, raw):
        detail = raw.vote_detail(118, 1, 3)
        detail.update({"legislationType": "HRES", "legislationNumber": "5"})
        assert normalizer.roll_call(detail).bill_id == "hres-5-118"

        detail.update({"legislationType": "QUORUM", "legislationNumber": None})
        assert normalizer.roll_call(detail).bill_id is None

    def test_missing_roll_number(self, normalizer):
        with pytest.raises(DataFormatError):
            normalizer.roll_call({"congress": 118, "sessionNumber": 1})

    def test_positions_drop_entries_without_member(self, normalizer):
        positions = normalizer.vote_positions("h118-1-17", [
            {"bioguideID": "A000370", "voteCast": "Aye"},
            {"voteCast": "No"},
            {"bioguideId": "D000096", "votePosition": "Nay"},
        ])

        assert [(p.legislator_id, p.position) for p in positions] == [
            ("A000370", "YEA"),
            ("D000096", "NAY"),
        ]
