# tests/unit/tasks/test_build_tasks.py - v2
"""Tests for the build task runners against the sample project."""

from __future__ import annotations

import json

import pytest

from polyship.core.errors import LintError, PublishError
from polyship.deploy.models import Environment
from polyship.pipeline.state import BuildState
from polyship.tasks import cache_config, clean, copy, images, markup, scripts, styles
from polyship.tasks.copy import VULCANIZED_BUNDLE
from polyship.tasks.deploy import deploy_to
from polyship.tasks.revision import revision
from polyship.tasks.transforms import TransformSet


@pytest.fixture
def built(sample_project, state) -> BuildState:
    """State after clean and copy ran on the sample project."""
    clean.clean(state)
    copy.copy(state)
    return state


class TestClean:
    def test_removes_tmp_and_dist_but_not_deploy(self, sample_project, state):
        for name in (".tmp", "dist", "deploy/staging"):
            (sample_project / name).mkdir(parents=True)

        output = clean.clean(state)

        assert not (sample_project / ".tmp").exists()
        assert not (sample_project / "dist").exists()
        assert (sample_project / "deploy" / "staging").is_dir()
        assert len(output.notes) == 2

    def test_clean_dist(self, state):
        dist = state.dist_root
        for rel in ("test/a.html", "x.js.map", "scripts/app.js.map", "scripts/app.js"):
            (dist / rel).parent.mkdir(parents=True, exist_ok=True)
            (dist / rel).write_text("x")

        output = clean.clean_dist(state)

        assert {"test", "x.js.map", "scripts/app.js.map"} <= set(output.notes)
        assert not (dist / "test").exists()
        assert not (dist / "scripts" / "app.js.map").exists()
        assert (dist / "scripts" / "app.js").is_file()


class TestCopy:
    def test_copies_app_and_vendor_files(self, built):
        dist = built.dist_root
        for rel in (
            "index.html",
            "manifest.json",
            "scripts/app.js",
            "elements/elements.html",
            "elements/my-card/my-card.html",
            "bower_components/polymer/polymer.html",
            "bower_components/webcomponentsjs/webcomponents-lite.min.js",
            "sw-toolbox/sw-toolbox.js",
            "elements/bootstrap/sw-toolbox-setup.js",
            VULCANIZED_BUNDLE,
        ):
            assert (dist / rel).is_file(), rel

    def test_skips_tests_demos_and_element_styles(self, built):
        dist = built.dist_root
        assert not (dist / "test").exists()
        assert not (dist / "bower_components/polymer/index.html").exists()
        assert not (dist / "bower_components/polymer/demo").exists()
        assert not (dist / "elements/my-card/my-card.css").exists()

    def test_fonts(self, sample_project, state):
        assert copy.fonts(state).files_written == 1
        assert (state.dist_root / "fonts" / "icons.woff").read_text() == "WOFF"


class TestStyles:
    def test_processes_then_skips_unchanged(self, sample_project, state):
        first = styles.styles(state)
        assert first.files_written == 1
        assert (state.tmp_root / "styles" / "main.css").read_text() == "a{color:red}"
        assert (state.dist_root / "styles" / "main.css").read_text() == "a{color:red}"

        second = styles.styles(state)
        assert second.files_written == 0
        assert second.files_skipped == 1

    def test_changed_source_is_reprocessed(self, sample_project, state):
        styles.styles(state)
        (sample_project / "app" / "styles" / "main.css").write_text("b { color: blue; }")

        output = styles.styles(state)

        assert output.files_written == 1
        assert (state.dist_root / "styles" / "main.css").read_text() == "b{color: blue}"

    def test_missing_output_is_rebuilt(self, sample_project, state):
        styles.styles(state)
        (state.dist_root / "styles" / "main.css").unlink()

        assert styles.styles(state).files_written == 1
        assert (state.dist_root / "styles" / "main.css").is_file()

    def test_persisted_cache_survives_across_runs(self, sample_project, settings):
        settings = settings.model_copy(update={"change_cache_persist": True})
        first = BuildState.create(settings)
        styles.styles(first)
        styles.elements(first)
        first.flush_caches()
        assert (sample_project / ".polyship" / "change-cache" / "styles.json").is_file()

        (sample_project / "app" / "elements" / "my-card" / "my-card.css").write_text(
            ":host { display: flex; }"
        )
        second = BuildState.create(settings)
        assert "styles/main.css" in second.cache("styles")

        assert styles.styles(second).files_skipped == 1
        output = styles.elements(second)
        assert output.files_written == 1
        assert output.files_skipped == 0

    def test_cache_is_not_persisted_by_default(self, sample_project, state):
        styles.styles(state)
        state.flush_caches()

        fresh = BuildState.create(state.settings)
        assert styles.styles(fresh).files_written == 1
        assert not (sample_project / ".polyship").exists()

    def test_elements_share_the_styles_cache(self, sample_project, state):
        styles.styles(state)
        styles.elements(state)

        cache = state.cache("styles")
        assert "styles/main.css" in cache
        assert "elements/my-card/my-card.css" in cache
        assert (state.tmp_root / "elements" / "my-card" / "my-card.css").is_file()

    def test_deleted_source_is_pruned(self, sample_project, state):
        styles.elements(state)
        (sample_project / "app" / "elements" / "my-card" / "my-card.css").unlink()

        styles.elements(state)

        assert "elements/my-card/my-card.css" not in state.cache("styles")

    def test_prefixer_output_goes_to_tmp(self, sample_project, settings):
        state = BuildState.create(
            settings, transforms=TransformSet(prefix_styles=lambda t: "/*p*/" + t)
        )
        styles.styles(state)
        assert (state.tmp_root / "styles" / "main.css").read_text().startswith("/*p*/")
        assert (state.dist_root / "styles" / "main.css").read_text() == "a{color:red}"


class TestImages:
    def test_optimizes_then_skips(self, sample_project, settings):
        state = BuildState.create(
            settings, transforms=TransformSet(optimize_image=lambda b: b.lower())
        )
        assert images.images(state).files_written == 1
        assert (state.dist_root / "images" / "logo.png").read_bytes() == b"pngdata"
        assert images.images(state).files_skipped == 1


class TestMarkup:
    def test_html_points_pages_at_vulcanized_bundle(self, built):
        markup.html(built)

        page = (built.dist_root / "index.html").read_text()
        assert VULCANIZED_BUNDLE in page
        assert "app shell" not in page
        assert not (built.dist_root / "test" / "index.html").exists()

    def test_vulcanize(self, built):
        built.transforms = TransformSet(vulcanize=lambda t: "<!-- flat -->")
        assert markup.vulcanize(built).files_written == 1
        assert (built.dist_root / VULCANIZED_BUNDLE).read_text() == "<!-- flat -->"

    def test_vulcanize_without_bundle(self, state):
        assert markup.vulcanize(state).notes == ["no bundle"]


class TestScripts:
    def test_lint_failure_raises(self, sample_project, settings):
        state = BuildState.create(
            settings,
            transforms=TransformSet(
                lint=lambda path, text: ["no console"] if "console" in text else []
            ),
        )
        with pytest.raises(LintError, match="scripts/app.js: no console"):
            scripts.lint(state)

    def test_lint_problems_reported_when_not_fatal(self, sample_project, settings):
        settings = settings.model_copy(update={"lint_fail_on_error": False})
        state = BuildState.create(
            settings, transforms=TransformSet(lint=lambda path, text: ["warn"])
        )
        output = scripts.lint(state)
        assert "scripts/app.js: warn" in output.notes

    def test_minify_dist_skips_bootstrap(self, built):
        bootstrap = built.dist_root / "elements" / "bootstrap" / "sw-toolbox-setup.js"
        before = bootstrap.read_text()

        scripts.minify_dist(built)

        assert (built.dist_root / "scripts" / "app.js").read_text() == (
            "(function () {\nconsole.log('ready');\n})();\n"
        )
        assert bootstrap.read_text() == before

    def test_fix_path_sw_toolbox(self, built):
        output = scripts.fix_path_sw_toolbox(built)

        text = (built.dist_root / "elements" / "bootstrap" / "sw-toolbox-setup.js").read_text()
        assert "importScripts('sw-toolbox/sw-toolbox.js')" in text
        assert "../" not in text
        assert output.notes == ["elements/bootstrap/sw-toolbox-setup.js"]
        assert scripts.fix_path_sw_toolbox(built).files_written == 0


class TestCacheConfigAndRevision:
    def test_cache_config_writes_manifest(self, built):
        styles.styles(built)

        output = cache_config.cache_config(built)

        manifest = json.loads((built.dist_root / "cache-config.json").read_text())
        assert manifest["cacheId"] == "sample-app"
        assert "styles/main.css" in manifest["precache"]
        assert "scripts/app.js" in manifest["precache"]
        assert manifest["precache"][-3:] == built.settings.precache_extra_list
        assert output.data["precache_fingerprint"] == manifest["precacheFingerprint"]
        assert built.manifest.cache_id == "sample-app"

    def test_revision_writes_record(self, built):
        styles.styles(built)
        scripts.fix_path_sw_toolbox(built)

        revision(built)

        record = json.loads((built.tmp_root / "rev-manifest.json").read_text())
        revised = record["entries"]["styles/main.css"]
        assert revised != "styles/main.css"
        assert (built.dist_root / revised).is_file()
        assert revised in (built.dist_root / "index.html").read_text()
        assert "sw-toolbox/sw-toolbox.js" not in record["entries"]
        assert built.revision.revisioned("scripts/app.js") != "scripts/app.js"


class TestDeployTasks:
    @pytest.mark.asyncio
    async def test_deploy_without_deployer(self, state):
        with pytest.raises(PublishError, match="No deployer"):
            await deploy_to(Environment.STAGING)(state)
