"""Platform name → tracker."""

from trackbridge.errors import UnsupportedPlatformError
from trackbridge.settings import BridgeSettings
from trackbridge.trackers.base import IssueTracker
from trackbridge.trackers.gitlab import GitLabTracker
from trackbridge.trackers.jira import JiraTracker

TRACKERS: dict[str, type[IssueTracker]] = {
    JiraTracker.name: JiraTracker,
    GitLabTracker.name: GitLabTracker,
}

# First entry is the fallback default platform
SUPPORTED_PLATFORMS = tuple(TRACKERS)


def resolve(platform: str | None, settings: BridgeSettings) -> IssueTracker:
    tracker_cls = TRACKERS.get(str(platform or "").lower())
    if tracker_cls is None:
        raise UnsupportedPlatformError(f"Unsupported platform: {platform or ''}")
    return tracker_cls(settings)
