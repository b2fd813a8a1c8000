"""
SQLAlchemy ORM models for the legislative store.

This package defines the database schema using SQLAlchemy ORM models:

Models:
    base: Base declarative class and shared enums (Chamber, Party, VoteResult, ...)
    legislator: Members of Congress keyed by bioguide id
    committee: Committees and subcommittees with a self-referencing parent link
    bill: Bills and resolutions with deterministic ids
    vote: Roll call votes and individual member positions

Database Schema:
    All models inherit from the Base declarative class. Every table has a
    natural key so the bulk import can upsert idempotently.

Usage:
    from models.legislator import Legislator
    from models.vote import RollCallVote, VotePosition
    from models.base import Chamber, VoteResult

Relationships:
    - Committee → Committee (parent / subcommittees)
    - RollCallVote → Bill (optional)
    - VotePosition → RollCallVote, Legislator
"""

from models.base import Base
from models.legislator import Legislator
from models.committee import Committee
from models.bill import Bill
from models.vote import RollCallVote, VotePosition

__all__ = [
    "Base",
    "Legislator",
    "Committee",
    "Bill",
    "RollCallVote",
    "VotePosition",
]
