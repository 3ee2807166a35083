"""Record models for Azure DevOps resources."""

from .records import (
    REFS_HEADS,
    Build,
    BuildArtifact,
    BuildArtifactRecord,
    ChangeCounts,
    ClassificationNode,
    Commit,
    GitUserDate,
    IdentityRef,
    Project,
    PullRequest,
    Push,
    Repository,
    Team,
    TeamFieldValue,
    TeamMember,
    TeamMemberRecord,
    TeamAreaPathRecord,
)

__all__ = [
    "REFS_HEADS",
    "Build",
    "BuildArtifact",
    "BuildArtifactRecord",
    "ChangeCounts",
    "ClassificationNode",
    "Commit",
    "GitUserDate",
    "IdentityRef",
    "Project",
    "PullRequest",
    "Push",
    "Repository",
    "Team",
    "TeamFieldValue",
    "TeamMember",
    "TeamMemberRecord",
    "TeamAreaPathRecord",
]
