"""Git integration: working-branch creation and the commit/push/PR chain."""

from worqhat_wizard.vcs.branch import BranchManager, GitBranchDescriptor, make_branch_name
from worqhat_wizard.vcs.publish import (
    COMMIT_BODY,
    COMMIT_TITLE,
    PR_BODY,
    PublishReport,
    commit_and_open_pr,
)

__all__ = [
    "BranchManager",
    "COMMIT_BODY",
    "COMMIT_TITLE",
    "GitBranchDescriptor",
    "PR_BODY",
    "PublishReport",
    "commit_and_open_pr",
    "make_branch_name",
]
