"""
Constants for sprint intelligence operations.

Defines upstream field identifiers, query limits and the fixed design
constants used while aggregating sprint metrics.
"""

from typing import List, Tuple


# ============================================================================
# Jira Field Identifiers
# ============================================================================

class JiraFields:
    """Jira issue field identifiers."""

    KEY = "key"
    SUMMARY = "summary"
    STATUS = "status"
    ISSUE_TYPE = "issuetype"
    ASSIGNEE = "assignee"
    PRIORITY = "priority"

    # Story points live under instance-specific custom fields
    STORY_POINTS_PRIMARY = "customfield_10004"
    STORY_POINTS_ALT_1 = "customfield_10002"
    STORY_POINTS_ALT_2 = "customfield_10005"
    STORY_POINTS_ALT_3 = "customfield_10003"


# Candidate story-point fields, in resolution priority order
DEFAULT_STORY_POINT_FIELDS: Tuple[str, ...] = (
    JiraFields.STORY_POINTS_PRIMARY,
    JiraFields.STORY_POINTS_ALT_1,
    JiraFields.STORY_POINTS_ALT_2,
    JiraFields.STORY_POINTS_ALT_3,
)

# Fields always requested when fetching sprint issues
BASE_ISSUE_FIELDS: List[str] = [
    JiraFields.SUMMARY,
    JiraFields.STATUS,
    JiraFields.ISSUE_TYPE,
    JiraFields.ASSIGNEE,
    JiraFields.PRIORITY,
]


def issue_fields_for(story_point_fields) -> List[str]:
    """
    Build the field list for an issue query.

    Args:
        story_point_fields: Candidate story-point field identifiers

    Returns:
        Base fields followed by every story-point candidate (no duplicates)
    """
    fields = list(BASE_ISSUE_FIELDS)
    for field_id in story_point_fields:
        if field_id not in fields:
            fields.append(field_id)
    return fields


# ============================================================================
# Sprint States
# ============================================================================

class SprintStates:
    """Jira sprint lifecycle states."""

    ACTIVE = "active"
    CLOSED = "closed"
    FUTURE = "future"

    ALL = (ACTIVE, CLOSED, FUTURE)


class SprintMatchPolicy:
    """How to settle a sprint label that still matches several sprints."""

    MOST_RECENT = "most_recent"
    STRICT = "strict"

    ALL = (MOST_RECENT, STRICT)


DEFAULT_DONE_STATUS = "Done"


# ============================================================================
# Query Limits
# ============================================================================

class QueryLimits:
    """Page sizes and caps for upstream queries."""

    # Jira agile API maximum page size
    JIRA_PAGE_SIZE = 100

    # Builds fetched per branch-targeted request
    BRANCH_BUILD_LIMIT = 10

    # Builds fetched by the unfiltered fallback request
    FALLBACK_BUILD_LIMIT = 50

    # Builds kept per pipeline after dedup and sort
    MAX_BUILDS_PER_PIPELINE = 5

    # GitHub pagination
    GITHUB_PAGE_SIZE = 100
    GITHUB_MAX_PAGES = 50


class Timeouts:
    """Timeouts in seconds."""

    HTTP_REQUEST = 30
    SLOW_OPERATION_MS = 5000.0


class WorkerPools:
    """Worker threads per upstream system for blocking client calls."""

    JIRA = 4
    # pipelines x branch patterns run at once
    AZURE_DEVOPS = 16
    GITHUB = 2


# Substring that marks a release branch in the fallback build search
RELEASE_BRANCH_MARKER = "release"

DEFAULT_BRANCH_REF_PREFIX = "refs/heads/"


# ============================================================================
# Tool Categories
# ============================================================================

class ToolCategories:
    """Tool category identifiers."""

    RELEASE = "release"
    ANALYSIS = "analysis"
    INTEGRATION = "integration"
    JIRA = "jira"

    ALL = (RELEASE, ANALYSIS, INTEGRATION, JIRA)


DEFAULT_CONTRIBUTOR_LIMIT = 5


# ============================================================================
# Velocity Analysis
# ============================================================================

class VelocityThresholds:
    """Thresholds for velocity trend and consistency classification."""

    TREND_WINDOW = 3
    INCREASE_FACTOR = 1.1
    DECREASE_FACTOR = 0.9
    HIGH_CONSISTENCY_CV = 0.2
    MEDIUM_CONSISTENCY_CV = 0.4
