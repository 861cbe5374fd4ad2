"""
Tests for the bulk action processor: install and activate flows over a BulkSelection.
"""

from unittest.mock import AsyncMock

import pytest

from required_plugins.core.activation import ActivationError
from required_plugins.core.bulk_actions import (
    ActivationResult,
    BulkActionProcessor,
    BulkSelection,
    InstallNeedsCredentials,
    InstallStarted,
    NoAction,
    outcome_to_dict,
)
from required_plugins.core.credentials import DIRECT, FilesystemCredentials, NeedCredentials
from required_plugins.core.installer import InstallReport
from required_plugins.core.list_table import build_rows, checkbox_value
from required_plugins.core.package_info import PackageInfo, PackageInfoError
from required_plugins.core.registry import InstalledPluginIndex
from required_plugins.models import PluginSpec


@pytest.fixture
def collaborators(mocker):
    credentials = mocker.Mock()
    credentials.ensure_credentials = AsyncMock(return_value=FilesystemCredentials(method=DIRECT))
    package_info = mocker.Mock()
    package_info.fetch = AsyncMock(
        side_effect=lambda slug: PackageInfo(
            slug=slug, name=slug, version="1.0", download_link=f"https://downloads.example.com/{slug}.zip"
        )
    )
    installer = mocker.Mock()
    installer.bulk_install = AsyncMock(
        side_effect=lambda sources, names, creds: [
            InstallReport(name=name, success=True, message=f"{name} installed") for name in names
        ]
    )
    activation = mocker.Mock()
    activation.activate = AsyncMock(side_effect=lambda paths: list(paths))
    activation.remove_recently_activated = AsyncMock(return_value={})
    return credentials, package_info, installer, activation


@pytest.fixture
def processor(registry, collaborators):
    credentials, package_info, installer, activation = collaborators
    return BulkActionProcessor(
        registry=registry,
        credentials=credentials,
        package_info=package_info,
        installer=installer,
        activation=activation,
    )


class TestActivate:
    async def test_bulk_activate_reports_every_name(self, processor, collaborators):
        _, _, _, activation = collaborators

        outcome = await processor.process_submission(
            "bulk-activate", {}, ["a/a.php,repo,Alpha", "b/b.php,repo,Beta"]
        )

        assert isinstance(outcome, ActivationResult)
        assert outcome.message() == "The following plugins were activated successfully: <strong>Alpha</strong> and <strong>Beta</strong>."
        activation.activate.assert_awaited_once_with(["a/a.php", "b/b.php"])
        activation.remove_recently_activated.assert_awaited_once_with(["a/a.php", "b/b.php"])

    async def test_single_activation_message(self, processor):
        outcome = await processor.process_submission("bulk-activate", {}, ["a/a.php,repo,Alpha"])

        assert outcome.message() == "The following plugin was activated successfully: <strong>Alpha</strong>"

    async def test_uninstalled_plugins_are_skipped(self, processor, collaborators):
        _, _, _, activation = collaborators

        outcome = await processor.process_submission("bulk-activate", {}, ["slider-pro,bundled/slider-pro.zip,Slider Pro"])

        assert isinstance(outcome, NoAction)
        activation.activate.assert_not_awaited()

    async def test_activation_error_shows_failure(self, processor, collaborators):
        _, _, _, activation = collaborators
        activation.activate.side_effect = ActivationError("Plugin file does not exist: b/b.php", ["a/a.php"])

        outcome = await processor.process_submission(
            "bulk-activate", {}, ["a/a.php,repo,Alpha", "b/b.php,repo,Beta"]
        )

        assert outcome.succeeded == ["Alpha"]
        assert outcome.failed == "Plugin file does not exist: b/b.php"
        assert outcome.message() == "Plugin file does not exist: b/b.php"
        activation.remove_recently_activated.assert_awaited_once_with(["a/a.php", "b/b.php"])


class TestInstall:
    async def test_installed_plugins_are_not_reinstalled(self, processor, collaborators):
        credentials, _, installer, _ = collaborators

        outcome = await processor.process_submission("bulk-install", {}, ["alpha-cache/alpha-cache.php,repo,Alpha Cache"])

        assert isinstance(outcome, NoAction)
        credentials.ensure_credentials.assert_not_awaited()
        installer.bulk_install.assert_not_awaited()

    async def test_uninstalled_plugin_with_declared_file_path_can_be_installed(self, processor, collaborators):
        credentials, _, installer, _ = collaborators
        spec = PluginSpec(name="Foo", slug="foo", file_path="foo/foo.php", required=True)
        [row] = build_rows([spec], InstalledPluginIndex())

        outcome = await processor.install(BulkSelection.from_form([checkbox_value(row)]))

        assert isinstance(outcome, InstallStarted)
        credentials.ensure_credentials.assert_awaited_once()
        sources, names, _ = installer.bulk_install.call_args.args
        assert sources == ["https://downloads.example.com/foo.zip"]
        assert names == ["Foo"]

    async def test_public_plugin_is_resolved_through_package_info(self, processor, collaborators):
        _, package_info, installer, _ = collaborators

        outcome = await processor.process_submission("bulk-install", {}, ["alpha-cache,repo,Alpha Cache"])

        assert isinstance(outcome, InstallStarted)
        package_info.fetch.assert_awaited_once_with("alpha-cache")
        installer.bulk_install.assert_awaited_once()
        sources, names, _ = installer.bulk_install.call_args.args
        assert sources == ["https://downloads.example.com/alpha-cache.zip"]
        assert names == ["Alpha Cache"]

    async def test_declared_source_is_used_as_is(self, processor, collaborators):
        _, package_info, installer, _ = collaborators

        await processor.process_submission(
            "bulk-install",
            {},
            ["slider-pro,bundled/slider-pro.zip,Slider Pro", "members-area,https://downloads.example.com/members-area.zip,Members Area"],
        )

        package_info.fetch.assert_not_awaited()
        sources, names, _ = installer.bulk_install.call_args.args
        assert sources == ["bundled/slider-pro.zip", "https://downloads.example.com/members-area.zip"]
        assert names == ["Slider Pro", "Members Area"]

    async def test_needs_credentials_carries_the_selection(self, processor, collaborators):
        credentials, _, installer, _ = collaborators
        credentials.ensure_credentials.return_value = NeedCredentials(form_url="/plugins/required/credentials?x=1")

        outcome = await processor.process_submission("bulk-install", {}, ["alpha-cache,repo,Alpha Cache"])

        assert isinstance(outcome, InstallNeedsCredentials)
        assert outcome.form_url == "/plugins/required/credentials?x=1"
        assert "action=bulk-install" in outcome.return_url
        assert "plugins=alpha-cache" in outcome.return_url
        installer.bulk_install.assert_not_awaited()

    async def test_resumed_install_reads_the_query_lists(self, processor, collaborators):
        _, _, installer, _ = collaborators
        query = {
            "plugins": "alpha-cache,slider-pro",
            "plugin_sources": "repo,bundled%2Fslider-pro.zip",
            "plugin_names": "Alpha%20Cache,Slider%20Pro",
        }

        outcome = await processor.process_submission("bulk-install", query)

        assert [report.name for report in outcome.results] == ["Alpha Cache", "Slider Pro"]
        sources, _, _ = installer.bulk_install.call_args.args
        assert sources == ["https://downloads.example.com/alpha-cache.zip", "bundled/slider-pro.zip"]

    async def test_package_info_failure_aborts_before_installing(self, processor, collaborators):
        _, package_info, installer, _ = collaborators
        package_info.fetch.side_effect = PackageInfoError("HTTP 500")

        with pytest.raises(PackageInfoError):
            await processor.process_submission("bulk-install", {}, ["alpha-cache,repo,Alpha Cache"])

        installer.bulk_install.assert_not_awaited()

    async def test_missing_download_link_is_reported(self, processor, collaborators):
        _, package_info, installer, _ = collaborators
        package_info.fetch.side_effect = None
        package_info.fetch.return_value = PackageInfo(slug="alpha-cache")

        outcome = await processor.process_submission(
            "bulk-install", {}, ["alpha-cache,repo,Alpha Cache", "slider-pro,bundled/slider-pro.zip,Slider Pro"]
        )

        assert [report.name for report in outcome.results] == ["Alpha Cache", "Slider Pro"]
        assert outcome.results[0].success is False
        assert outcome.results[1].success is True
        sources, _, _ = installer.bulk_install.call_args.args
        assert sources == ["bundled/slider-pro.zip"]


class TestSubmission:
    async def test_unknown_action_does_nothing(self, processor):
        assert isinstance(await processor.process_submission(None, {}, ["a/a.php,repo,Alpha"]), NoAction)
        assert isinstance(await processor.process_submission("delete", {}, ["a/a.php,repo,Alpha"]), NoAction)

    async def test_single_activate_link(self, processor, collaborators):
        _, _, _, activation = collaborators
        query = {"plugin_action": "activate-plugin", "plugin": "alpha-cache/alpha-cache.php", "plugin_name": "Alpha Cache"}

        outcome = await processor.process_single_action(query)

        assert outcome.succeeded == ["Alpha Cache"]
        activation.activate.assert_awaited_once_with(["alpha-cache/alpha-cache.php"])

    async def test_single_install_link(self, processor, collaborators):
        _, _, installer, _ = collaborators
        query = {
            "plugin_action": "install-plugin",
            "plugin": "slider-pro",
            "plugin_name": "Slider Pro",
            "plugin_source": "bundled/slider-pro.zip",
        }

        outcome = await processor.process_single_action(query)

        assert isinstance(outcome, InstallStarted)
        sources, _, _ = installer.bulk_install.call_args.args
        assert sources == ["bundled/slider-pro.zip"]

    async def test_single_action_without_plugin(self, processor):
        assert isinstance(await processor.process_single_action({"plugin_action": "install-plugin"}), NoAction)

    def test_outcome_to_dict(self):
        data = outcome_to_dict(ActivationResult(succeeded=["Alpha"]))

        assert data["outcome"] == "activation"
        assert data["succeeded"] == ["Alpha"]
        assert data["message"] == "The following plugin was activated successfully: <strong>Alpha</strong>"
