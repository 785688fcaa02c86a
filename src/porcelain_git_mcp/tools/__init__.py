from .git_tools import repo_info, repo_status

__all__ = [
    "repo_info",
    "repo_status",
]
