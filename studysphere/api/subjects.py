"""
StudySphere — Subjects API

Read-only catalog endpoints: subjects, availability slots and the option
lists the profile editor offers.
"""

from __future__ import annotations

from fastapi import APIRouter

from studysphere.catalog import (
    ALL_AVAILABILITY,
    ALL_LEARNING_STYLES,
    ALL_STUDY_METHODS,
    ALL_SUBJECTS,
)
from studysphere.schemas.subject import ProfileOptions, Subject

router = APIRouter()


@router.get("", response_model=list[Subject], summary="List the subject catalog")
async def list_subjects() -> list[Subject]:
    return list(ALL_SUBJECTS)


@router.get("/availability", response_model=list[str], summary="List availability slots")
async def list_availability() -> list[str]:
    return list(ALL_AVAILABILITY)


@router.get("/options", response_model=ProfileOptions, summary="Profile editor option lists")
async def profile_options() -> ProfileOptions:
    return ProfileOptions(
        learning_styles=list(ALL_LEARNING_STYLES),
        study_methods=list(ALL_STUDY_METHODS),
        availability=list(ALL_AVAILABILITY),
    )
