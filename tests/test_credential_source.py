"""
Tests for reading cached tokens through git's credential helper.
"""

import os
import subprocess
import unittest
from unittest.mock import MagicMock, patch

import pytest

from profilehub.exit_codes import CredentialUnavailable
from profilehub.infra.credential_source import CredentialSource, parse_credential_output


def completed(stdout="", returncode=0):
    result = MagicMock()
    result.stdout = stdout
    result.returncode = returncode
    return result


class TestParseCredentialOutput(unittest.TestCase):

    def test_basic(self):
        output = "protocol=https\nhost=github.com\nusername=alice\npassword=gho_abc\n"
        creds = parse_credential_output(output)
        self.assertEqual(creds['username'], 'alice')
        self.assertEqual(creds['password'], 'gho_abc')

    def test_value_containing_equals(self):
        creds = parse_credential_output("password=abc==\n")
        self.assertEqual(creds['password'], 'abc==')

    def test_lines_without_equals_ignored(self):
        creds = parse_credential_output("garbage\npassword=tok\n\n")
        self.assertEqual(creds, {'password': 'tok'})

    def test_empty(self):
        self.assertEqual(parse_credential_output(""), {})


class TestCredentialSource:

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_returns_password(self, mock_run):
        mock_run.return_value = completed("protocol=https\nhost=github.com\npassword=gho_abc\n")

        assert CredentialSource().get_token() == 'gho_abc'

        args, kwargs = mock_run.call_args
        assert args[0] == ['git', '-c', 'credential.interactive=false', '-c', 'core.askPass=',
                           'credential', 'fill']
        assert kwargs['input'] == "protocol=https\nhost=github.com\n\n"
        assert kwargs['timeout'] == 10
        assert kwargs['env']['GIT_TERMINAL_PROMPT'] == '0'
        assert kwargs['env']['GCM_INTERACTIVE'] == 'never'

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_askpass_programs_disabled(self, mock_run):
        mock_run.return_value = completed("password=tok\n")
        askpass = {'GIT_ASKPASS': '/usr/bin/ksshaskpass', 'SSH_ASKPASS': '/usr/bin/ssh-askpass'}

        with patch.dict(os.environ, askpass):
            CredentialSource().get_token()

        env = mock_run.call_args[1]['env']
        assert 'GIT_ASKPASS' not in env
        assert 'SSH_ASKPASS' not in env
        assert 'core.askPass=' in mock_run.call_args[0][0]

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_custom_host(self, mock_run):
        mock_run.return_value = completed("password=tok\n")

        CredentialSource(host='ghe.example.com', timeout=3).get_token()

        kwargs = mock_run.call_args[1]
        assert 'host=ghe.example.com' in kwargs['input']
        assert kwargs['timeout'] == 3

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_no_password_field(self, mock_run):
        mock_run.return_value = completed("protocol=https\nhost=github.com\nusername=alice\n")
        assert CredentialSource().get_token() is None

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_nonzero_exit(self, mock_run):
        mock_run.return_value = completed("", returncode=128)
        assert CredentialSource().get_token() is None

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd='git', timeout=10)
        assert CredentialSource().get_token() is None

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_git_missing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("git")
        assert CredentialSource().get_token() is None

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_require_token_raises(self, mock_run):
        mock_run.return_value = completed("", returncode=1)
        with pytest.raises(CredentialUnavailable):
            CredentialSource().require_token()

    @patch('profilehub.infra.credential_source.subprocess.run')
    def test_require_token(self, mock_run):
        mock_run.return_value = completed("password=tok\n")
        assert CredentialSource().require_token() == 'tok'
