"""Pipeline stage data models."""

from __future__ import annotations

from enum import Enum


class Stage(str, Enum):
    """The four ordered phases of a pipeline run.

    PRE_PROCESS, MAIN and POST_PROCESS double as the priority buckets that
    pipeline-array entries are classified into. RESPONSE is reserved for the
    inbox's single response agent.
    """

    PRE_PROCESS = "pre-process"
    RESPONSE = "response"
    MAIN = "main"
    POST_PROCESS = "post-process"


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.PRE_PROCESS,
    Stage.RESPONSE,
    Stage.MAIN,
    Stage.POST_PROCESS,
)
