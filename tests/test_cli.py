"""
Tests for the modrelay command line interface.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from modrelay.cli import cli
from modrelay.commands.go import DEFAULT_GOPROXY, go_environment
from modrelay.config import CONFIG_ENV, Config
from modrelay.exit_codes import CONFIG_ERROR, NO_ROUTE, NoRouteError
from modrelay.router import PatternRouter
from modrelay.services.publish_service import PublishedAsset, PublishResult

from .conftest import MemoryBackend

CONFIG_JSON = json.dumps({
    'repos': {
        'github.com/acme/*': {'type': 'codeartifact', 'domain': 'acme', 'repository': 'go'},
    }
})


@pytest.fixture
def runner():
    return CliRunner(env={CONFIG_ENV: None})


def sample_result():
    return PublishResult(
        module_path="github.com/acme/widgets",
        version="v0.1.0",
        route="github.com/acme/*",
        repository="MemoryBackend",
        assets=[
            PublishedAsset("v0.1.0.info", "aa", 10, True),
            PublishedAsset("v0.1.0.mod", "bb", 20, True),
            PublishedAsset("v0.1.0.zip", "cc", 30, False),
        ],
    )


class TestCliBasics:
    """Tests for the command group itself."""

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        for command in ('go', 'serve', 'publish', 'config'):
            assert command in result.output


class TestPublishCommand:
    """Tests for `modrelay publish`."""

    @patch('modrelay.commands.publish.PublishService')
    @patch('modrelay.commands.publish.load_config')
    def test_outputs_jsonl(self, mock_load_config, mock_service_cls, runner):
        mock_load_config.return_value = Config(router=PatternRouter())
        mock_service_cls.return_value.publish.return_value = sample_result()

        result = runner.invoke(cli, ['publish', 'v0.1.0'])

        assert result.exit_code == 0
        record = json.loads(result.stdout.strip().splitlines()[-1])
        assert record['module'] == "github.com/acme/widgets"
        assert [a['name'] for a in record['assets']] == ["v0.1.0.info", "v0.1.0.mod", "v0.1.0.zip"]
        mock_service_cls.return_value.publish.assert_called_once_with('v0.1.0')

    @patch('modrelay.commands.publish.PublishService')
    @patch('modrelay.commands.publish.load_config')
    def test_pretty_table(self, mock_load_config, mock_service_cls, runner):
        mock_load_config.return_value = Config(router=PatternRouter())
        mock_service_cls.return_value.publish.return_value = sample_result()

        result = runner.invoke(cli, ['publish', 'v0.1.0', '--pretty'])

        assert result.exit_code == 0
        assert "v0.1.0.zip" in result.output

    @patch('modrelay.commands.publish.PublishService')
    @patch('modrelay.commands.publish.load_config')
    def test_no_route_exit_code(self, mock_load_config, mock_service_cls, runner):
        mock_load_config.return_value = Config(router=PatternRouter())
        mock_service_cls.return_value.publish.side_effect = NoRouteError("github.com/acme/widgets")

        result = runner.invoke(cli, ['publish', 'v0.1.0'])

        assert result.exit_code == NO_ROUTE
        assert "No repository found matching module: github.com/acme/widgets" in result.output

    @patch('modrelay.commands.publish.load_config')
    def test_dir_option_is_passed(self, mock_load_config, runner, tmp_path):
        mock_load_config.return_value = Config(router=PatternRouter())
        with patch('modrelay.commands.publish.PublishService') as mock_service_cls:
            mock_service_cls.return_value.publish.return_value = sample_result()
            result = runner.invoke(cli, ['publish', 'v0.1.0', '--dir', str(tmp_path)])

        assert result.exit_code == 0
        mock_load_config.assert_called_once_with(start=str(tmp_path))
        assert mock_service_cls.call_args.kwargs['working_dir'] == str(tmp_path)

    def test_missing_config(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ['publish', 'v0.1.0'])
        assert result.exit_code == CONFIG_ERROR

    def test_publishes_git_module(self, runner, git_module):
        backend = MemoryBackend()
        config = Config(router=PatternRouter.from_pairs([("github.com/acme/*", backend)]))
        with patch('modrelay.commands.publish.load_config', return_value=config):
            result = runner.invoke(cli, ['publish', 'v0.1.0', '--dir', str(git_module / 'sub')])

        assert result.exit_code == 0
        assert backend.publish_calls == [("github.com/acme/widgets", "v0.1.0")]


class TestConfigCommand:
    """Tests for `modrelay config show`."""

    def test_show(self, runner):
        with runner.isolated_filesystem():
            Path('.modrelay.json').write_text(CONFIG_JSON)
            result = runner.invoke(cli, ['config', 'show'])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data['repos'][0]['pattern'] == 'github.com/acme/*'

    def test_show_path(self, runner):
        with runner.isolated_filesystem():
            Path('.modrelay.json').write_text(CONFIG_JSON)
            expected = str(Path('.modrelay.json').resolve())
            result = runner.invoke(cli, ['config', 'show', '--path'])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {'config_path': expected}

    def test_show_without_config(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ['config', 'show'])
        assert result.exit_code == CONFIG_ERROR


class TestGoEnvironment:
    """Tests for go_environment()."""

    def test_prepends_proxy_to_default(self):
        env = go_environment({}, "http://127.0.0.1:5000", ["github.com/acme/*"])
        assert env['GOPROXY'] == f"http://127.0.0.1:5000,{DEFAULT_GOPROXY}"
        assert env['GONOSUMDB'] == "github.com/acme/*"

    def test_keeps_existing_settings(self):
        environ = {'GOPROXY': 'https://goproxy.example', 'GONOSUMDB': 'corp.example/*', 'HOME': '/home/x'}
        env = go_environment(environ, "http://127.0.0.1:5000", ["github.com/acme/*", "golang.org/x/crypto"])

        assert env['GOPROXY'] == "http://127.0.0.1:5000,https://goproxy.example"
        assert env['GONOSUMDB'] == "corp.example/*,github.com/acme/*,golang.org/x/crypto"
        assert env['HOME'] == '/home/x'
        assert environ['GOPROXY'] == 'https://goproxy.example'


class TestGoCommand:
    """Tests for `modrelay go`."""

    @patch('modrelay.commands.go.subprocess.run')
    @patch('modrelay.commands.go.load_config')
    def test_runs_go_with_proxy(self, mock_load_config, mock_run, runner):
        mock_load_config.return_value = Config(
            router=PatternRouter.from_pairs([("github.com/acme/*", MemoryBackend())])
        )
        mock_run.return_value = MagicMock(returncode=0)

        result = runner.invoke(cli, ['go', 'mod', 'download', '-x'])

        assert result.exit_code == 0
        args, kwargs = mock_run.call_args
        assert args[0] == ['go', 'mod', 'download', '-x']
        assert kwargs['env']['GOPROXY'].startswith("http://127.0.0.1:")
        assert kwargs['env']['GONOSUMDB'].endswith("github.com/acme/*")

    @patch('modrelay.commands.go.subprocess.run')
    @patch('modrelay.commands.go.load_config')
    def test_returns_go_exit_code(self, mock_load_config, mock_run, runner):
        mock_load_config.return_value = Config(router=PatternRouter())
        mock_run.return_value = MagicMock(returncode=3)

        result = runner.invoke(cli, ['go', 'build', './...'])
        assert result.exit_code == 3

    @patch('modrelay.commands.go.subprocess.run', side_effect=FileNotFoundError("go"))
    @patch('modrelay.commands.go.load_config')
    def test_go_not_installed(self, mock_load_config, mock_run, runner):
        mock_load_config.return_value = Config(router=PatternRouter())
        result = runner.invoke(cli, ['go', 'version'])
        assert result.exit_code == 1
        assert "go command not found" in result.output

    def test_help_flag_is_passed_to_go(self, runner):
        with patch('modrelay.commands.go.load_config', return_value=Config(router=PatternRouter())), \
                patch('modrelay.commands.go.subprocess.run', return_value=MagicMock(returncode=0)) as mock_run:
            result = runner.invoke(cli, ['go', '--help'])
        assert result.exit_code == 0
        assert mock_run.call_args[0][0] == ['go', '--help']


class TestServeCommand:
    """Tests for `modrelay serve`."""

    @patch('modrelay.commands.serve.run_proxy_server')
    @patch('modrelay.commands.serve.load_config')
    def test_starts_server(self, mock_load_config, mock_run_server, runner):
        config = Config(router=PatternRouter())
        mock_load_config.return_value = config

        result = runner.invoke(cli, ['serve', '--port', '9000'])

        assert result.exit_code == 0
        mock_run_server.assert_called_once_with(config.router, host='127.0.0.1', port=9000)
