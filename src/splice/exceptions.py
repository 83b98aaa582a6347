"""Splice exception hierarchy.

Provides a structured exception tree so catch blocks can be specific
and callers can distinguish between different failure modes.

The merge engine has no entry here: every merge path degrades to a
lower-precision strategy instead of failing.
"""

from __future__ import annotations


class SpliceError(Exception):
    """Base for all Splice exceptions."""


class JobError(SpliceError):
    """Generation job failures, raised inside the poller only."""


class JobInvocationError(JobError):
    """The create call failed; the job never started."""


class NoJobIdError(JobError):
    """The create call succeeded but returned no job identifier."""


class PollTransportError(JobError):
    """A status poll failed. Polls are never retried."""


class JobFailedError(JobError):
    """The inference service reported the job as failed."""


class JobTimedOutError(JobError):
    """The poll budget ran out before the job reached a terminal status."""
