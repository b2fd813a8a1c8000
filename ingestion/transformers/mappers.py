"""
Lookup tables and pure mapping functions from Congress.gov vocabulary to
model enums.

Unknown inputs fall back to a documented default (Party.O, state "XX",
CommitteeType.STANDING, ...). Vote results and categories that cannot be
classified map to UNKNOWN rather than a plausible-looking value.
"""

import re
from typing import Dict, Optional, Tuple
from models.base import (
    BillStatus,
    BillType,
    Chamber,
    CommitteeType,
    Party,
    VoteCategory,
    VotePositionValue,
    VoteResult,
    VoteType,
)


# ============================================================================
# Lookup tables
# ============================================================================

BILL_TYPE_MAP: Dict[str, BillType] = {
    "hr": BillType.HR,
    "hres": BillType.HRES,
    "hjres": BillType.HJRES,
    "hconres": BillType.HCONRES,
    "s": BillType.S,
    "sres": BillType.SRES,
    "sjres": BillType.SJRES,
    "sconres": BillType.SCONRES,
}

CHAMBER_MAP: Dict[str, Chamber] = {
    "house": Chamber.HOUSE,
    "senate": Chamber.SENATE,
    "House": Chamber.HOUSE,
    "Senate": Chamber.SENATE,
    "HOUSE": Chamber.HOUSE,
    "SENATE": Chamber.SENATE,
    "H": Chamber.HOUSE,
    "S": Chamber.SENATE,
    "House of Representatives": Chamber.HOUSE,
}

PARTY_MAP: Dict[str, Party] = {
    "Democratic": Party.D,
    "Democrat": Party.D,
    "Republican": Party.R,
    "Independent": Party.I,
    "Libertarian": Party.L,
    "Green": Party.G,
    "D": Party.D,
    "R": Party.R,
    "I": Party.I,
    "ID": Party.I,
    "L": Party.L,
    "G": Party.G,
}

COMMITTEE_TYPE_MAP: Dict[str, CommitteeType] = {
    "Standing": CommitteeType.STANDING,
    "Select": CommitteeType.SELECT,
    "Joint": CommitteeType.JOINT,
    "Subcommittee": CommitteeType.SUBCOMMITTEE,
    "Special": CommitteeType.SPECIAL,
    "STANDING": CommitteeType.STANDING,
    "SELECT": CommitteeType.SELECT,
    "JOINT": CommitteeType.JOINT,
    "SUBCOMMITTEE": CommitteeType.SUBCOMMITTEE,
    "SPECIAL": CommitteeType.SPECIAL,
}

US_STATES: Dict[str, str] = {
    "AL": "Alabama", "AK": "Alaska", "AZ": "Arizona", "AR": "Arkansas",
    "CA": "California", "CO": "Colorado", "CT": "Connecticut", "DE": "Delaware",
    "FL": "Florida", "GA": "Georgia", "HI": "Hawaii", "ID": "Idaho",
    "IL": "Illinois", "IN": "Indiana", "IA": "Iowa", "KS": "Kansas",
    "KY": "Kentucky", "LA": "Louisiana", "ME": "Maine", "MD": "Maryland",
    "MA": "Massachusetts", "MI": "Michigan", "MN": "Minnesota", "MS": "Mississippi",
    "MO": "Missouri", "MT": "Montana", "NE": "Nebraska", "NV": "Nevada",
    "NH": "New Hampshire", "NJ": "New Jersey", "NM": "New Mexico", "NY": "New York",
    "NC": "North Carolina", "ND": "North Dakota", "OH": "Ohio", "OK": "Oklahoma",
    "OR": "Oregon", "PA": "Pennsylvania", "RI": "Rhode Island", "SC": "South Carolina",
    "SD": "South Dakota", "TN": "Tennessee", "TX": "Texas", "UT": "Utah",
    "VT": "Vermont", "VA": "Virginia", "WA": "Washington", "WV": "West Virginia",
    "WI": "Wisconsin", "WY": "Wyoming", "DC": "District of Columbia",
    "PR": "Puerto Rico", "VI": "Virgin Islands", "GU": "Guam",
    "AS": "American Samoa", "MP": "Northern Mariana Islands",
}

STATE_NAME_TO_CODE: Dict[str, str] = {name: code for code, name in US_STATES.items()}

UNKNOWN_STATE = "XX"


# ============================================================================
# Simple mappers
# ============================================================================

def map_state_to_code(state: Optional[str]) -> str:
    """"California" -> "CA"; two-letter codes pass through; unknown -> "XX"."""
    if not state:
        return UNKNOWN_STATE
    state = state.strip()
    if len(state) == 2 and state.isupper():
        return state
    return STATE_NAME_TO_CODE.get(state, UNKNOWN_STATE)


def map_bill_type(bill_type: Optional[str]) -> BillType:
    return BILL_TYPE_MAP.get((bill_type or "").lower(), BillType.HR)


def map_chamber(chamber: Optional[str]) -> Optional[Chamber]:
    if not chamber:
        return None
    return CHAMBER_MAP.get(chamber.strip())


def map_party(party: Optional[str]) -> Party:
    if not party:
        return Party.O
    return PARTY_MAP.get(party.strip(), Party.O)


def map_committee_type(committee_type: Optional[str]) -> CommitteeType:
    if not committee_type:
        return CommitteeType.STANDING
    return COMMITTEE_TYPE_MAP.get(committee_type.strip(), CommitteeType.STANDING)


# ============================================================================
# Bills
# ============================================================================

# Ordered: more specific phrases must precede the general ones they contain
_BILL_STATUS_RULES: Tuple[Tuple[Tuple[str, ...], BillStatus], ...] = (
    (("became public law", "became law"), BillStatus.ENACTED),
    (("signed by president", "signed by the president"), BillStatus.SIGNED_INTO_LAW),
    (("pocket vetoed", "pocket veto"), BillStatus.POCKET_VETOED),
    (("vetoed by president", "vetoed by the president"), BillStatus.VETOED),
    (("veto overridden",), BillStatus.VETO_OVERRIDDEN),
    (("failed", "rejected"), BillStatus.FAILED),
    (("withdrawn", "withdrew"), BillStatus.WITHDRAWN),
    (("presented to president", "sent to president"), BillStatus.TO_PRESIDENT),
    (("resolving differences", "conference"), BillStatus.RESOLVING_DIFFERENCES),
    (("passed senate", "agreed to in senate"), BillStatus.PASSED_SENATE),
    (("passed house", "agreed to in house"), BillStatus.PASSED_HOUSE),
    (("reported by", "ordered to be reported"), BillStatus.REPORTED_BY_COMMITTEE),
    (("referred to", "committee"), BillStatus.IN_COMMITTEE),
    (("introduced",), BillStatus.INTRODUCED),
)


def infer_bill_status(latest_action_text: Optional[str]) -> BillStatus:
    """Classify a bill by the text of its latest action."""
    if not latest_action_text:
        return BillStatus.INTRODUCED

    text = latest_action_text.lower()
    for phrases, status in _BILL_STATUS_RULES:
        if any(phrase in text for phrase in phrases):
            return status
    return BillStatus.INTRODUCED


def generate_bill_id(bill_type: str, number, congress) -> str:
    """"hr-1234-118". Used by both bills and the votes that reference them."""
    return f"{str(bill_type).lower()}-{int(number)}-{int(congress)}"


# ============================================================================
# Legislators
# ============================================================================

def parse_full_name(full_name: Optional[str]) -> Tuple[str, str, Optional[str]]:
    """
    Split a member name into (first, last, middle).

    Handles "Last, First Middle" (the list format) and "First Middle Last".
    """
    name = (full_name or "").strip()
    if not name:
        return "", "", None

    if "," in name:
        last, rest = name.split(",", 1)
        rest_parts = rest.split()
        first = rest_parts[0] if rest_parts else ""
        middle = " ".join(rest_parts[1:]) or None
        return first, last.strip(), middle

    parts = name.split()
    if len(parts) == 1:
        return "", parts[0], None
    if len(parts) == 2:
        return parts[0], parts[1], None
    return parts[0], parts[-1], " ".join(parts[1:-1])


# ============================================================================
# Votes
# ============================================================================

def map_vote_result(result: Optional[str]) -> VoteResult:
    """
    "Passed" -> PASSED, "Agreed to" -> AGREED_TO, "Failed" -> FAILED,
    "Not Agreed to" / "Rejected" -> REJECTED, anything else -> UNKNOWN.
    """
    if not result:
        return VoteResult.UNKNOWN

    text = result.lower()
    if "not agreed" in text:
        return VoteResult.REJECTED
    if "failed" in text:
        return VoteResult.FAILED
    if "rejected" in text:
        return VoteResult.REJECTED
    if "agreed" in text:
        return VoteResult.AGREED_TO
    if "passed" in text:
        return VoteResult.PASSED
    return VoteResult.UNKNOWN


def map_vote_type(vote_type: Optional[str]) -> VoteType:
    if not vote_type:
        return VoteType.ROLL_CALL

    text = vote_type.lower()
    if "yea" in text or "nay" in text:
        return VoteType.ROLL_CALL
    if "voice" in text:
        return VoteType.VOICE
    if "unanimous" in text:
        return VoteType.UNANIMOUS_CONSENT
    if "division" in text:
        return VoteType.DIVISION
    return VoteType.ROLL_CALL


_VOTE_CATEGORY_RULES: Tuple[Tuple[Tuple[str, ...], VoteCategory], ...] = (
    (("amendment",), VoteCategory.AMENDMENT),
    (("passage", "final"), VoteCategory.PASSAGE),
    (("cloture",), VoteCategory.CLOTURE),
    (("recommit",), VoteCategory.MOTION_TO_RECOMMIT),
    (("table",), VoteCategory.MOTION_TO_TABLE),
    (("motion", "procedural"), VoteCategory.PROCEDURAL),
    (("nomination",), VoteCategory.NOMINATION),
    (("treaty",), VoteCategory.TREATY),
    (("veto",), VoteCategory.VETO_OVERRIDE),
    (("impeachment",), VoteCategory.IMPEACHMENT),
)


def map_vote_category(category: Optional[str]) -> VoteCategory:
    """Keyword classification; missing or unrecognized -> UNKNOWN."""
    if not category:
        return VoteCategory.UNKNOWN

    text = category.lower()
    for keywords, value in _VOTE_CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return value
    return VoteCategory.UNKNOWN


def map_vote_position(position: Optional[str]) -> VotePositionValue:
    text = (position or "").strip().lower()
    if text in ("yea", "aye", "yes"):
        return VotePositionValue.YEA
    if text in ("nay", "no"):
        return VotePositionValue.NAY
    if text == "present":
        return VotePositionValue.PRESENT
    return VotePositionValue.NOT_VOTING


_ROLL_CALL_PREFIX = {Chamber.HOUSE: "h", Chamber.SENATE: "s"}


def generate_roll_call_id(chamber: Chamber, congress: int, session: int, roll_number: int) -> str:
    """"h118-1-123" (chamber prefix, congress, session, roll number)"""
    return f"{_ROLL_CALL_PREFIX[Chamber(chamber)]}{congress}-{session}-{roll_number}"


_DIGITS = re.compile(r"\d+")


def parse_int_prefix(value) -> Optional[int]:
    """First run of digits in `value` ("118th Congress" -> 118)."""
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    match = _DIGITS.search(str(value))
    return int(match.group()) if match else None
