"""Tests for ripple.flow.git module."""

from __future__ import annotations

from pathlib import Path

from ripple.flow import git


def test_queries_are_machine_readable() -> None:
    assert git.PORCELAIN_STATUS == "git status --porcelain"
    assert git.CURRENT_BRANCH == "git branch --show-current"
    assert git.HEAD_COMMIT == "git rev-parse --verify --quiet HEAD"
    assert git.list_branches("release-") == "git for-each-ref '--format=%(refname:short)' 'refs/heads/release-*'"


def test_branch_commands() -> None:
    assert git.checkout("develop") == "git checkout develop"
    assert git.create_branch("release-1.5.0", "develop") == "git checkout -b release-1.5.0 develop"
    assert git.create_branch_here("develop") == "git branch develop"
    assert git.delete_branch("hotfix-1.4.8") == "git branch -d hotfix-1.4.8"
    assert git.rename_branch("release-1.6.0") == "git branch -m release-1.6.0"
    assert git.branch_exists("develop") == "git show-ref --verify --quiet refs/heads/develop"


def test_merge() -> None:
    assert git.merge("feature") == "git merge --no-ff feature"
    assert git.merge("release-1.5.0", theirs=True) == "git merge --no-ff -s recursive -Xtheirs release-1.5.0"


def test_tag_is_annotated() -> None:
    assert git.tag("1.5.0") == "git tag -a 1.5.0 -m 'version 1.5.0'"


def test_commit_and_stage() -> None:
    path = Path("/work/package.json")
    assert git.commit_file(path, "bump version to 1.5.0") == (
        "git add /work/package.json && git commit -m 'bump version to 1.5.0'"
    )
    assert git.stage_file(path) == "git add /work/package.json && git status"


def test_branch_names_are_quoted() -> None:
    assert git.checkout("x; rm -rf .") == "git checkout 'x; rm -rf .'"
