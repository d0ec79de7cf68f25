"""Tests for ripple.flow.controller module.

Git is replaced by a scripted runner: every command line gets a canned
outcome (empty success unless scripted), and the order of commands the
controller sends is what the tests check.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

from ripple.core.config import BranchesConfig, Config
from ripple.core.result import Err, Ok
from ripple.exec.executor import SequentialExecutor
from ripple.flow import git
from ripple.flow.controller import WorkflowController
from ripple.flow.operations import Bump, Finish, Init, Operation, Start, Status
from ripple.flow.state import RunOptions
from ripple.manifest.semver import Version
from ripple.output.console import MockConsole
from ripple.platform.process import CommandOutput, Outcome, ProcessError

PRELOAD = [
    git.INSIDE_WORK_TREE,
    git.PORCELAIN_STATUS,
    git.CURRENT_BRANCH,
    git.list_branches("release-"),
    git.list_branches("hotfix-"),
]


class ScriptedRunner:
    """Fake runner answering from a command -> outcome table.

    `effects` stand in for what a command would do to the working tree.
    """

    def __init__(self, replies: dict[str, Outcome], effects: dict[str, Callable[[], None]] | None = None) -> None:
        self.replies = replies
        self.effects = effects or {}
        self.commands: list[str] = []

    async def __call__(self, command: str) -> Outcome:
        self.commands.append(command)
        await asyncio.sleep(0)
        if command in self.effects:
            self.effects[command]()
        return self.replies.get(command, Ok(CommandOutput(command=command, stdout="")))


def _ok(command: str, stdout: str) -> Outcome:
    return Ok(CommandOutput(command=command, stdout=stdout))


def _fail(command: str, *, stdout: str = "", stderr: str = "", returncode: int = 1) -> Outcome:
    return Err(ProcessError(command=command, returncode=returncode, stdout=stdout, stderr=stderr))


def _repo(
    current: str = "develop",
    *,
    dirty: bool = False,
    release: str | None = None,
    hotfix: str | None = None,
) -> dict[str, Outcome]:
    """Replies for the preload queries describing a repository."""
    return {
        git.INSIDE_WORK_TREE: _ok(git.INSIDE_WORK_TREE, "true\n"),
        git.PORCELAIN_STATUS: _ok(git.PORCELAIN_STATUS, " M src/app.py\n" if dirty else ""),
        git.CURRENT_BRANCH: _ok(git.CURRENT_BRANCH, f"{current}\n"),
        git.list_branches("release-"): _ok("", f"{release}\n" if release else ""),
        git.list_branches("hotfix-"): _ok("", f"{hotfix}\n" if hotfix else ""),
    }


def _manifest(tmp_path: Path, version: str = "1.4.7", **extra: object) -> Path:
    path = tmp_path / "package.json"
    path.write_text(json.dumps({"name": "app", "version": version, **extra}), encoding="utf-8")
    return path


def _version_on_disk(path: Path) -> str:
    return json.loads(path.read_text(encoding="utf-8"))["version"]


class Harness:
    def __init__(
        self,
        tmp_path: Path,
        replies: dict[str, Outcome],
        *,
        commit: bool = True,
        verbose: bool = False,
        effects: dict[str, Callable[[], None]] | None = None,
        config: Config | None = None,
    ) -> None:
        self.manifest = tmp_path / "package.json"
        self.runner = ScriptedRunner(replies, effects)
        self.console = MockConsole()
        self.options = RunOptions(manifest=self.manifest, commit=commit, verbose=verbose)
        self.config = config or Config()
        self.controller: WorkflowController | None = None

    def run(self, operation: Operation) -> int:
        async def go() -> int:
            self.controller = WorkflowController(
                SequentialExecutor(self.runner),
                self.console,
                self.options,
                config=self.config,
            )
            return await self.controller.run(operation)

        return asyncio.run(go())

    @property
    def commands(self) -> list[str]:
        return self.runner.commands

    @property
    def after_preload(self) -> list[str]:
        assert self.commands[: len(PRELOAD)] == PRELOAD
        return self.commands[len(PRELOAD) :]


class TestPreload:
    def test_not_a_repository(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, {git.INSIDE_WORK_TREE: _fail(git.INSIDE_WORK_TREE, returncode=128)})

        assert h.run(Status()) == 1

        assert h.commands == [git.INSIDE_WORK_TREE]
        assert h.console.messages == ["error: git says this isn't a repository. Are you in the right folder?"]

    def test_fills_state(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo("release-1.5.0", dirty=True, release="release-1.5.0", hotfix="hotfix-1.4.8"))

        h.run(Status())

        assert h.controller is not None
        state = h.controller.state
        assert state.current == "release-1.5.0"
        assert state.dirty
        assert state.is_release and not state.is_hotfix
        assert state.release == "release-1.5.0"
        assert state.hotfix == "hotfix-1.4.8"

    def test_failing_query_stops_the_run(self, tmp_path: Path) -> None:
        replies = _repo()
        replies[git.CURRENT_BRANCH] = _fail(git.CURRENT_BRANCH, stderr="fatal: bad HEAD")
        h = Harness(tmp_path, replies)

        assert h.run(Status()) == 1

        assert h.commands == PRELOAD[:3]
        assert "fatal: bad HEAD" in h.console.text


class TestStatus:
    def test_clean_develop(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo())

        assert h.run(Status()) == 0

        assert h.after_preload == []
        assert h.console.messages[0] == "Status"
        assert h.console.find("Current release: app 1.4.7")
        assert h.console.find("You may create a release branch")
        assert h.console.find("You may create a hotfix branch")
        assert h.console.messages[-1] == "ok."

    def test_existing_branches(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo(release="release-1.5.0", hotfix="hotfix-1.4.8"))

        h.run(Status())

        assert h.console.find("You cannot create a release branch, release-1.5.0 already exists.")
        assert h.console.find("You cannot create a hotfix branch, hotfix-1.4.8 already exists.")

    def test_missing_manifest(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, _repo())

        assert h.run(Status()) == 1

        assert h.console.has_error()
        assert h.console.find("could not be read. File does not exist.")


class TestStartRelease:
    def test_existing_release_sends_no_commands(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo(release="release-1.5.0"))

        assert h.run(Start(kind="release")) == 1

        assert h.commands == PRELOAD
        assert h.console.find("You already have a release branch!")

    def test_dirty_tree(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo(dirty=True))

        assert h.run(Start(kind="release")) == 1

        assert h.commands == PRELOAD
        assert h.console.find("Can't start on a dirty working tree.")

    def test_minor_bump(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "1.4.7", private=True)
        h = Harness(tmp_path, _repo())

        assert h.run(Start(kind="release", bump="minor")) == 0

        assert h.after_preload == [
            "git checkout develop",
            "git checkout -b release-1.5.0 develop",
            git.commit_file(path, "bump version to 1.5.0"),
        ]
        assert json.loads(path.read_text(encoding="utf-8")) == {
            "name": "app",
            "version": "1.5.0",
            "private": True,
        }
        assert h.console.find("updating version: 1.4.7 -> 1.5.0")
        assert h.console.messages[-1] == "ok."

    def test_warns_about_open_hotfix(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo(hotfix="hotfix-1.4.8"))

        assert h.run(Start(kind="release")) == 0

        assert h.console.has_warning()

    def test_branch_creation_failure(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path)
        replies = _repo()
        create = git.create_branch("release-1.4.8", "develop")
        replies[create] = _fail(create, stderr="fatal: a branch named 'release-1.4.8' already exists")
        h = Harness(tmp_path, replies)

        assert h.run(Start(kind="release")) == 1

        assert h.commands[-1] == create
        assert _version_on_disk(path) == "1.4.7"
        assert h.console.find("already exists")

    def test_no_commit_stages_instead(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path)
        replies = _repo()
        replies[git.stage_file(path)] = _ok("", "Changes to be committed:\n\tmodified: package.json\n")
        h = Harness(tmp_path, replies, commit=False)

        assert h.run(Start(kind="release")) == 0

        assert h.after_preload[-1] == git.stage_file(path)
        assert not any("git commit" in c for c in h.commands)
        assert h.console.find("Changes to be committed:")
        assert _version_on_disk(path) == "1.4.8"


class TestStartHotfix:
    def test_branches_from_trunk_with_revision_bump(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path)
        h = Harness(tmp_path, _repo(release="release-1.5.0"))

        assert h.run(Start(kind="hotfix", bump="major")) == 0

        assert h.after_preload == [
            "git checkout master",
            "git checkout -b hotfix-1.4.8 master",
            git.commit_file(path, "bump version to 1.4.8"),
        ]
        assert h.console.has_warning()

    def test_custom_branch_names(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        config = Config(branches=BranchesConfig(trunk="main", hotfix_prefix="hotfix/"))
        replies = _repo("main")
        replies[git.list_branches("hotfix/")] = _ok("", "")
        h = Harness(tmp_path, replies, config=config)

        assert h.run(Start(kind="hotfix")) == 0

        assert "git checkout -b hotfix/1.4.8 main" in h.commands


class TestStartFeature:
    def test_from_develop(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo())

        assert h.run(Start(kind="feature", name="login")) == 0

        assert h.after_preload == ["git checkout develop", "git checkout -b login develop"]

    def test_without_name(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo())

        assert h.run(Start(kind="feature")) == 1

        assert h.commands == PRELOAD
        assert h.console.find("When starting a new feature, include a name.")


class TestBump:
    def test_renames_release_branch(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "1.5.0")
        h = Harness(tmp_path, _repo("release-1.5.0", release="release-1.5.0"))

        assert h.run(Bump(part="minor")) == 0

        assert h.after_preload == [
            "git checkout release-1.5.0",
            git.commit_file(path, "bump version to 1.6.0"),
            "git branch -m release-1.6.0",
        ]
        assert h.controller is not None
        assert h.controller.state.current == "release-1.6.0"
        assert h.controller.state.release == "release-1.6.0"

    def test_off_release_branch(self, tmp_path: Path) -> None:
        _manifest(tmp_path)
        h = Harness(tmp_path, _repo(release="release-1.5.0"))

        assert h.run(Bump(part="minor")) == 1

        assert h.commands == PRELOAD


class TestFinishFeature:
    def test_merges_into_develop(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, _repo("login"))

        assert h.run(Finish(kind="feature")) == 0

        assert h.after_preload == [
            "git checkout develop",
            "git merge --no-ff login",
            "git branch -d login",
        ]

    def test_verbose_shows_git_output(self, tmp_path: Path) -> None:
        replies = _repo("login")
        replies[git.merge("login")] = _ok("", "Merge made by the 'ort' strategy.\n")
        h = Harness(tmp_path, replies, verbose=True)

        h.run(Finish(kind="feature"))

        assert h.console.find("Merge made by the 'ort' strategy.")


class TestFinishRelease:
    def test_full_chain(self, tmp_path: Path) -> None:
        _manifest(tmp_path, "1.5.0")
        h = Harness(tmp_path, _repo(release="release-1.5.0"))

        assert h.run(Finish(kind="release")) == 0

        assert h.after_preload == [
            "git checkout release-1.5.0",
            "git checkout master",
            "git merge --no-ff -s recursive -Xtheirs release-1.5.0",
            "git tag -a 1.5.0 -m 'version 1.5.0'",
            "git checkout develop",
            "git merge --no-ff release-1.5.0",
            "git branch -d release-1.5.0",
        ]
        assert h.console.messages[-1] == "ok."

    def test_merge_failure_stops_chain(self, tmp_path: Path) -> None:
        _manifest(tmp_path, "1.5.0")
        replies = _repo(release="release-1.5.0")
        merge = git.merge("release-1.5.0", theirs=True)
        replies[merge] = _fail(merge, stdout="CONFLICT (modify/delete): a.txt\n")
        h = Harness(tmp_path, replies)

        assert h.run(Finish(kind="release")) == 1

        assert h.commands[-1] == merge
        assert not any(c.startswith("git tag") for c in h.commands)
        assert h.console.has_error()
        assert h.console.find("CONFLICT (modify/delete): a.txt")
        assert not h.console.has_success()

    def test_blocked_by_hotfix(self, tmp_path: Path) -> None:
        h = Harness(tmp_path, _repo(release="release-1.5.0", hotfix="hotfix-1.4.8"))

        assert h.run(Finish(kind="release")) == 1

        assert h.commands == PRELOAD
        assert h.console.find("You must finish your hotfix before finishing your release.")

    def test_invalid_manifest(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        path.write_text('{"name": "app", "version": "next"}', encoding="utf-8")
        h = Harness(tmp_path, _repo(release="release-1.5.0"))

        assert h.run(Finish(kind="release")) == 1

        assert h.after_preload == ["git checkout release-1.5.0"]
        assert h.console.find(str(path))


class TestFinishHotfix:
    def test_without_release_merges_into_develop(self, tmp_path: Path) -> None:
        _manifest(tmp_path, "1.4.8")
        h = Harness(tmp_path, _repo(hotfix="hotfix-1.4.8"))

        assert h.run(Finish(kind="hotfix")) == 0

        assert h.after_preload == [
            "git checkout hotfix-1.4.8",
            "git checkout master",
            "git merge --no-ff -s recursive -Xtheirs hotfix-1.4.8",
            "git tag -a 1.4.8 -m 'version 1.4.8'",
            "git checkout develop",
            "git merge --no-ff hotfix-1.4.8",
            "git branch -d hotfix-1.4.8",
        ]

    def test_with_release_merges_into_release_and_bumps(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "1.4.8")
        h = Harness(tmp_path, _repo(release="release-1.5.0", hotfix="hotfix-1.4.8"))

        assert h.run(Finish(kind="hotfix")) == 0

        assert h.after_preload == [
            "git checkout hotfix-1.4.8",
            "git checkout master",
            "git merge --no-ff -s recursive -Xtheirs hotfix-1.4.8",
            "git tag -a 1.4.8 -m 'version 1.4.8'",
            "git checkout release-1.5.0",
            "git merge --no-ff -s recursive -Xtheirs hotfix-1.4.8",
            "git branch -d hotfix-1.4.8",
            git.commit_file(path, "bump version to 1.5.1"),
            "git branch -m release-1.5.1",
        ]
        assert _version_on_disk(path) == "1.5.1"
        assert h.console.has_warning()
        assert h.controller is not None
        assert h.controller.state.release == "release-1.5.1"

    def test_release_manifest_is_reread_after_merge(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "1.4.8")

        def release_checked_out() -> None:
            _manifest(tmp_path, "1.5.0", dependencies={"x": "1"})

        h = Harness(
            tmp_path,
            _repo(release="release-1.5.0", hotfix="hotfix-1.4.8"),
            effects={"git checkout release-1.5.0": release_checked_out},
        )

        assert h.run(Finish(kind="hotfix")) == 0

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"name": "app", "version": "1.5.1", "dependencies": {"x": "1"}}
        assert h.console.find("updating version: 1.5.0 -> 1.5.1")

    def test_unreadable_merged_manifest_stops_before_commit(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "1.4.8")

        def conflicted() -> None:
            path.write_text("<<<<<<< HEAD\n", encoding="utf-8")

        merge = git.merge("hotfix-1.4.8", theirs=True)
        h = Harness(
            tmp_path,
            _repo(release="release-1.5.0", hotfix="hotfix-1.4.8"),
            effects={"git checkout release-1.5.0": conflicted},
        )

        assert h.run(Finish(kind="hotfix")) == 1

        assert h.commands[-2:] == [merge, "git branch -d hotfix-1.4.8"]
        assert h.console.find("could not be parsed")

    def test_tag_failure(self, tmp_path: Path) -> None:
        _manifest(tmp_path, "1.4.8")
        replies = _repo(hotfix="hotfix-1.4.8")
        tag = git.tag("1.4.8")
        replies[tag] = _fail(tag, stderr="fatal: tag '1.4.8' already exists", returncode=128)
        h = Harness(tmp_path, replies)

        assert h.run(Finish(kind="hotfix")) == 1

        assert h.commands[-1] == tag
        assert h.console.find("fatal: tag '1.4.8' already exists")


class TestInit:
    def test_creates_manifest_and_develop(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        replies = _repo("master")
        replies[git.branch_exists("develop")] = _fail(git.branch_exists("develop"))
        h = Harness(tmp_path, replies)

        assert h.run(Init(name="app", version=Version(0, 1, 0))) == 0

        assert h.after_preload == [
            git.commit_file(path, "initialize app at 0.1.0"),
            "git show-ref --verify --quiet refs/heads/develop",
            "git rev-parse --verify --quiet HEAD",
            "git branch develop",
        ]
        assert json.loads(path.read_text(encoding="utf-8")) == {"name": "app", "version": "0.1.0"}

    def test_keeps_existing_fields(self, tmp_path: Path) -> None:
        path = _manifest(tmp_path, "3.0.0", scripts={"test": "pytest"})
        h = Harness(tmp_path, _repo())

        assert h.run(Init(name="renamed", version=Version(1, 0, 0))) == 0

        assert h.after_preload[-1] == git.branch_exists("develop")
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {"name": "renamed", "version": "1.0.0", "scripts": {"test": "pytest"}}

    def test_no_commits_yet_skips_develop(self, tmp_path: Path) -> None:
        path = tmp_path / "package.json"
        replies = _repo("master")
        replies[git.branch_exists("develop")] = _fail(git.branch_exists("develop"))
        replies[git.HEAD_COMMIT] = _fail(git.HEAD_COMMIT)
        h = Harness(tmp_path, replies, commit=False)

        assert h.run(Init(name="app", version=Version(0, 1, 0))) == 0

        assert h.after_preload == [
            git.stage_file(path),
            git.branch_exists("develop"),
            git.HEAD_COMMIT,
        ]
        assert h.console.has_warning()
        assert h.console.find('git branch develop')
        assert h.console.messages[-1] == "ok."
