"""
Transform raw Congress.gov records into validated create schemas
"""

from typing import Dict, Any, Optional, List
from datetime import date, datetime
from pydantic import ValidationError
from core.exceptions import DataFormatError
from models.base import Chamber
from schemas.legislative import (
    BillCreate,
    CommitteeCreate,
    LegislatorCreate,
    RollCallVoteCreate,
    VotePositionCreate,
)
from ingestion.transformers.mappers import (
    generate_bill_id,
    generate_roll_call_id,
    infer_bill_status,
    map_bill_type,
    map_chamber,
    map_committee_type,
    map_party,
    map_state_to_code,
    map_vote_category,
    map_vote_position,
    map_vote_result,
    map_vote_type,
    parse_full_name,
    parse_int_prefix,
)
import logging

logger = logging.getLogger(__name__)


class LegislativeNormalizer:
    """
    Normalize Congress.gov records into create schemas.

    Handles:
    - Vocabulary mapping (chamber, party, state, bill type, vote enums)
    - Deterministic ids (bill, roll call)
    - Type conversion of loosely typed API fields
    - Validation through the Pydantic schemas

    Every method raises DataFormatError for records that cannot be mapped;
    importers count those as per-record errors.
    """

    def legislator(self, record: Dict[str, Any], in_office: bool = True) -> LegislatorCreate:
        """Member list item. Historical members are passed with in_office=False."""
        bioguide_id = record.get("bioguideId")
        if not bioguide_id:
            raise DataFormatError(
                "Member record has no bioguideId",
                context={"field_name": "bioguideId"}
            )

        name = record.get("name") or record.get("directOrderName") or ""
        first, last, middle = parse_full_name(name)
        first = record.get("firstName") or first
        last = record.get("lastName") or last
        term = self._latest_term(record)

        chamber = map_chamber(term.get("chamber")) or Chamber.HOUSE
        state = term.get("stateCode") or map_state_to_code(record.get("state") or term.get("stateName"))
        district = self._parse_int(record.get("district", term.get("district")))

        return self._build(
            LegislatorCreate,
            bioguide_id,
            id=bioguide_id,
            first_name=first,
            middle_name=middle,
            last_name=last or bioguide_id,
            full_name=name.strip() or f"{first} {last}".strip() or bioguide_id,
            party=map_party(record.get("partyName") or record.get("party")),
            chamber=chamber,
            state=state,
            district=district if chamber == Chamber.HOUSE else None,
            in_office=in_office,
        )

    @staticmethod
    def _latest_term(record: Dict[str, Any]) -> Dict[str, Any]:
        terms = record.get("terms") or {}
        if isinstance(terms, dict):
            terms = terms.get("item") or []
        terms = [t for t in terms if isinstance(t, dict)]
        if not terms:
            return {}
        return max(terms, key=lambda t: t.get("startYear") or 0)

    def committee(self, record: Dict[str, Any]) -> CommitteeCreate:
        system_code = record.get("systemCode")
        if not system_code:
            raise DataFormatError(
                "Committee record has no systemCode",
                context={"field_name": "systemCode"}
            )

        parent = record.get("parent") or {}
        return self._build(
            CommitteeCreate,
            system_code,
            id=system_code,
            name=record.get("name") or "",
            chamber=map_chamber(record.get("chamber")) or Chamber.HOUSE,
            committee_type=map_committee_type(record.get("committeeTypeCode")),
            parent_id=parent.get("systemCode") if isinstance(parent, dict) else None,
        )

    def bill(self, record: Dict[str, Any]) -> BillCreate:
        congress = self._parse_int(record.get("congress"))
        bill_type = record.get("type")
        number = self._parse_int(record.get("number"))
        if not congress or not bill_type or not number:
            raise DataFormatError(
                "Bill record is missing congress, type or number",
                context={
                    "congress": record.get("congress"),
                    "type": bill_type,
                    "number": record.get("number"),
                }
            )

        bill_id = generate_bill_id(bill_type, number, congress)
        latest_action = record.get("latestAction") or {}

        return self._build(
            BillCreate,
            bill_id,
            id=bill_id,
            congress_number=congress,
            bill_type=map_bill_type(bill_type),
            bill_number=number,
            title=record.get("title"),
            status=infer_bill_status(latest_action.get("text")),
            origin_chamber=map_chamber(record.get("originChamber") or record.get("originChamberCode")),
            introduced_date=self._parse_date(record.get("introducedDate") or record.get("updateDate")),
            last_action_date=self._parse_date(latest_action.get("actionDate")),
            last_action_text=latest_action.get("text"),
        )

    def roll_call(self, detail: Dict[str, Any], chamber: Chamber = Chamber.HOUSE) -> RollCallVoteCreate:
        congress = self._parse_int(detail.get("congress"))
        session = self._parse_int(detail.get("sessionNumber"))
        roll_number = self._parse_int(detail.get("rollCallNumber"))
        if not congress or not session or not roll_number:
            raise DataFormatError(
                "Roll call is missing congress, session or roll number",
                context={
                    "congress": detail.get("congress"),
                    "session": detail.get("sessionNumber"),
                    "roll_call_number": detail.get("rollCallNumber"),
                }
            )

        roll_call_id = generate_roll_call_id(chamber, congress, session, roll_number)
        question = (
            detail.get("question")
            or detail.get("voteQuestion")
            or detail.get("description")
            or "Unknown"
        )

        return self._build(
            RollCallVoteCreate,
            roll_call_id,
            id=roll_call_id,
            bill_id=self._referenced_bill_id(detail, congress),
            chamber=chamber,
            congress_number=congress,
            session=session,
            roll_number=roll_number,
            vote_type=map_vote_type(detail.get("voteType")),
            vote_category=map_vote_category(detail.get("category") or detail.get("voteQuestion")),
            question=question,
            result=map_vote_result(detail.get("result")),
            yeas=self._parse_int(detail.get("totalYea")) or 0,
            nays=self._parse_int(detail.get("totalNay")) or 0,
            present=self._parse_int(detail.get("totalPresent")) or 0,
            not_voting=self._parse_int(detail.get("totalNotVoting")) or 0,
            vote_date=self._parse_date(detail.get("date") or detail.get("startDate")),
        )

    def _referenced_bill_id(self, detail: Dict[str, Any], congress: int) -> Optional[str]:
        bill = detail.get("bill")
        if isinstance(bill, dict) and bill.get("type") and bill.get("number"):
            bill_congress = self._parse_int(bill.get("congress")) or congress
            return generate_bill_id(bill["type"], self._parse_int(bill["number"]), bill_congress)

        legislation_type = detail.get("legislationType")
        legislation_number = self._parse_int(detail.get("legislationNumber"))
        if legislation_type and legislation_number and legislation_type.lower() in (
            "hr", "hres", "hjres", "hconres", "s", "sres", "sjres", "sconres"
        ):
            return generate_bill_id(legislation_type, legislation_number, congress)
        return None

    def vote_positions(self, roll_call_id: str, members: List[Dict[str, Any]]) -> List[VotePositionCreate]:
        """Member positions; entries without a bioguide id are dropped."""
        positions = []
        for member in members:
            bioguide_id = member.get("bioguideId") or member.get("bioguideID")
            if not bioguide_id:
                logger.debug(f"Dropping position without bioguideId on {roll_call_id}")
                continue
            positions.append(VotePositionCreate(
                roll_call_id=roll_call_id,
                legislator_id=bioguide_id,
                position=map_vote_position(member.get("votePosition") or member.get("voteCast")),
                is_proxy=bool(member.get("isProxy", False)),
                paired_with=member.get("pairedWith"),
            ))
        return positions

    @staticmethod
    def _build(schema, record_id: str, **values):
        try:
            return schema(**values)
        except ValidationError as e:
            raise DataFormatError(
                f"Invalid {schema.__name__} record {record_id}",
                context={"record_id": record_id, "errors": e.error_count()},
                original_exception=e
            )

    @staticmethod
    def _parse_int(value: Any) -> Optional[int]:
        """Safely parse int value"""
        if value is None or value == "":
            return None
        try:
            return int(float(value))  # Handle "10.0" strings
        except (ValueError, TypeError):
            return parse_int_prefix(value)

    @staticmethod
    def _parse_date(value: Any) -> Optional[date]:
        """Safely parse a date or ISO datetime"""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
        except ValueError:
            return None
