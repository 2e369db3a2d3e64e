"""
StudySphere — Main API Router

Aggregates all sub-routers under a single prefix so that ``studysphere.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from studysphere.api import auth, groups, matching, messages, subjects, users

router = APIRouter()

router.include_router(subjects.router, prefix="/subjects", tags=["Subjects"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(matching.router, prefix="/match", tags=["Matching"])
router.include_router(groups.router, prefix="/groups", tags=["Groups"])
router.include_router(messages.router, prefix="/messages", tags=["Messages"])
router.include_router(auth.router, prefix="/auth", tags=["Auth"])
