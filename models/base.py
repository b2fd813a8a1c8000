from sqlalchemy.orm import declarative_base
import enum

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class Chamber(str, enum.Enum):
    """Legislative chamber"""
    HOUSE = "HOUSE"
    SENATE = "SENATE"


class Party(str, enum.Enum):
    """Party affiliation (O = other/unknown)"""
    D = "D"
    R = "R"
    I = "I"  # noqa: E741
    L = "L"
    G = "G"
    O = "O"  # noqa: E741


class CommitteeType(str, enum.Enum):
    """Committee type"""
    STANDING = "STANDING"
    SELECT = "SELECT"
    JOINT = "JOINT"
    SUBCOMMITTEE = "SUBCOMMITTEE"
    SPECIAL = "SPECIAL"


class BillType(str, enum.Enum):
    """Bill and resolution types"""
    HR = "HR"
    S = "S"
    HJRES = "HJRES"
    SJRES = "SJRES"
    HCONRES = "HCONRES"
    SCONRES = "SCONRES"
    HRES = "HRES"
    SRES = "SRES"


class BillStatus(str, enum.Enum):
    """Bill status inferred from the latest action"""
    INTRODUCED = "INTRODUCED"
    IN_COMMITTEE = "IN_COMMITTEE"
    REPORTED_BY_COMMITTEE = "REPORTED_BY_COMMITTEE"
    PASSED_HOUSE = "PASSED_HOUSE"
    PASSED_SENATE = "PASSED_SENATE"
    RESOLVING_DIFFERENCES = "RESOLVING_DIFFERENCES"
    TO_PRESIDENT = "TO_PRESIDENT"
    SIGNED_INTO_LAW = "SIGNED_INTO_LAW"
    ENACTED = "ENACTED"
    VETOED = "VETOED"
    POCKET_VETOED = "POCKET_VETOED"
    VETO_OVERRIDDEN = "VETO_OVERRIDDEN"
    FAILED = "FAILED"
    WITHDRAWN = "WITHDRAWN"


class VoteResult(str, enum.Enum):
    """Roll call outcome"""
    PASSED = "PASSED"
    FAILED = "FAILED"
    AGREED_TO = "AGREED_TO"
    REJECTED = "REJECTED"
    UNKNOWN = "UNKNOWN"


class VoteType(str, enum.Enum):
    """How the vote was taken"""
    ROLL_CALL = "ROLL_CALL"
    VOICE = "VOICE"
    UNANIMOUS_CONSENT = "UNANIMOUS_CONSENT"
    DIVISION = "DIVISION"


class VoteCategory(str, enum.Enum):
    """What the vote was on"""
    PASSAGE = "PASSAGE"
    AMENDMENT = "AMENDMENT"
    PROCEDURAL = "PROCEDURAL"
    CLOTURE = "CLOTURE"
    NOMINATION = "NOMINATION"
    TREATY = "TREATY"
    VETO_OVERRIDE = "VETO_OVERRIDE"
    MOTION_TO_RECOMMIT = "MOTION_TO_RECOMMIT"
    MOTION_TO_TABLE = "MOTION_TO_TABLE"
    IMPEACHMENT = "IMPEACHMENT"
    UNKNOWN = "UNKNOWN"


class VotePositionValue(str, enum.Enum):
    """Individual member position on a roll call"""
    YEA = "YEA"
    NAY = "NAY"
    PRESENT = "PRESENT"
    NOT_VOTING = "NOT_VOTING"
