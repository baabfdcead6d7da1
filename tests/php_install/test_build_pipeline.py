"""
Tests for the staged build — stage order, failure mapping, cleanup.
"""

from pathlib import Path

import pytest

from src.core.models.php import BuildContext
from src.core.services.php_install.domain.errors import (
    CompileFailed,
    ConfigureFailed,
    InstallFailed,
    PublishFailed,
    VerifyFailed,
)
from src.core.services.php_install.execution.build_pipeline import (
    BuildDeps,
    finalize,
    run_pipeline,
)


@pytest.fixture
def ctx(settings) -> BuildContext:
    source = settings.source_path("8.3")
    source.mkdir(parents=True)
    (source / "configure").write_text("#!/bin/sh\n")
    log = settings.logs_dir / "build-php8.3-b1.log"
    log.parent.mkdir(parents=True)
    log.write_text("$ ./configure\n")
    return BuildContext(
        release_line="8.3",
        exact_version="8.3.12",
        source_path=str(source),
        install_path=str(settings.line_dir("8.3") / "8.3.12-b1"),
        flags=["--prefix=/x", "--enable-fpm"],
        log_path=str(log),
        build_id="b1",
    )


@pytest.fixture
def deps(settings, user, runner) -> BuildDeps:
    return BuildDeps(settings=settings, user=user, privileged=True, jobs=8, runner=runner)


class TestStages:
    def test_success_runs_all_stages_in_order(self, ctx, deps, runner, settings):
        result = run_pipeline(ctx, deps)

        assert list(result["stages"]) == ["configure", "compile", "install", "publish", "verify"]
        assert runner.commands == [
            "/bin/bash ./configure --prefix=/x --enable-fpm",
            "make -j8",
            "make install",
            f"mkdir -p {settings.line_etc_dir('8.3')}/conf.d",
            f"{settings.line_link_path('8.3')} -v",
        ]
        link = settings.line_link_path("8.3")
        assert link.is_symlink()
        assert str(link.readlink()) == ctx.binary_path
        assert not settings.global_php_path.is_symlink()

    def test_compile_as_user_install_as_root(self, ctx, deps, runner):
        run_pipeline(ctx, deps)
        configure, make, make_install = runner.calls[:3]
        assert configure.ctx.as_user.username == "dev"
        assert configure.ctx.working_dir == ctx.source_path
        assert make.ctx.privileged is False
        assert make_install.ctx.privileged is True
        assert all(c.log_path == ctx.log_path for c in runner.calls)

    def test_default_also_publishes_global(self, ctx, deps, settings):
        ctx.is_default = True
        result = run_pipeline(ctx, deps)
        assert str(settings.global_php_path) in result["stages"]["publish"]["links"]
        assert settings.global_php_path.is_symlink()

    def test_unprivileged_does_not_drop(self, ctx, settings, user, runner):
        deps = BuildDeps(settings=settings, user=user, privileged=False, runner=runner)
        run_pipeline(ctx, deps)
        assert runner.calls[0].ctx.as_user is None


class TestStageFailures:
    """The first failing stage maps to its own error type."""

    @pytest.mark.parametrize("match, error_type, ran", [
        ("./configure", ConfigureFailed, 1),
        ("make -j", CompileFailed, 2),
        ("make install", InstallFailed, 3),
        ("php8.3 -v", VerifyFailed, 5),
    ])
    def test_failure_stops_pipeline(self, ctx, deps, runner, match, error_type, ran):
        runner.fail(match, stderr="last line of output\n")
        with pytest.raises(error_type) as exc:
            run_pipeline(ctx, deps)

        err = exc.value
        assert err.detail["log_path"] == ctx.log_path
        assert err.detail["exact_version"] == "8.3.12"
        assert "last line of output" in str(err)
        assert len(runner.calls) == ran

    def test_publish_refuses_regular_file(self, ctx, deps, settings):
        ctx.is_default = True
        settings.global_php_path.parent.mkdir(parents=True, exist_ok=True)
        settings.global_php_path.write_text("#!/bin/sh\n# distro php\n")
        with pytest.raises(PublishFailed, match="not a symlink"):
            run_pipeline(ctx, deps)
        assert settings.global_php_path.read_text().startswith("#!/bin/sh")

    def test_wrong_version_reported(self, ctx, deps, runner):
        runner.version_output = "8.3.11"
        with pytest.raises(VerifyFailed, match="expected 'PHP 8.3.12"):
            run_pipeline(ctx, deps)


class TestFinalize:
    def test_success_removes_source_and_log(self, ctx, deps):
        run_pipeline(ctx, deps)
        assert not Path(ctx.source_path).exists()
        assert not Path(ctx.log_path).exists()

    def test_failure_keeps_log(self, ctx, deps, runner):
        runner.fail("make -j")
        with pytest.raises(CompileFailed):
            run_pipeline(ctx, deps)
        assert not Path(ctx.source_path).exists()
        assert Path(ctx.log_path).read_text() == "$ ./configure\n"

    def test_missing_paths_are_fine(self, deps, tmp_path: Path):
        ctx = BuildContext(
            release_line="8.3",
            exact_version="8.3.12",
            source_path=str(tmp_path / "gone"),
            log_path=str(tmp_path / "gone.log"),
        )
        finalize(ctx, deps, success=True)
