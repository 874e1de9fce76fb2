"""Search backend adapters."""

from .algolia_client import AlgoliaSearchClient
from .github_issue_searcher import GitHubIssueSearcher

__all__ = ["AlgoliaSearchClient", "GitHubIssueSearcher"]
