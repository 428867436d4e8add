"""
命令行接口测试
"""

import json
import pytest
from click.testing import CliRunner

from ssh_system.authentication import PasswordSSHAuthentication
from ssh_system.cli import cli
from ssh_system.config import ServerConfig
from ssh_system.ssh_manager import SSHSystem


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "connections": {"default": {"host": "example.com", "username": "user", "password": "secret"}}
    }))
    return str(path)


@pytest.fixture(autouse=True)
def fake_system(monkeypatch, transport):
    def create_system(self):
        return SSHSystem(
            PasswordSSHAuthentication(self.username, self.password),
            self.host,
            self.port,
            host_keys=self.host_keys,
            transport=transport,
        )

    monkeypatch.setattr(ServerConfig, "create_system", create_system)


def run(config_path, *args):
    return CliRunner().invoke(cli, ["--config", config_path, *args])


def test_exec(config_path):
    result = run(config_path, "exec", "echo", "hello")
    assert result.exit_code == 0
    assert result.output == "hello\n"


def test_exec_exit_code(config_path):
    result = run(config_path, "exec", "exit", "4")
    assert result.exit_code == 4


def test_ls_recursive(config_path, transport):
    transport.add_file("/home/user/a/b")
    transport.add_file("/home/user/a/c/d")

    result = run(config_path, "ls", "-r", "a")
    assert result.exit_code == 0
    assert result.output.split() == ["/home/user/a/b", "/home/user/a/c", "/home/user/a/c/d"]


def test_stat(config_path, transport):
    transport.add_file("/srv/run.sh", b"#!/bin/sh\n", 0o755)

    result = run(config_path, "stat", "/srv/run.sh")
    assert result.exit_code == 0
    assert "permissions: 755" in result.output
    assert "size:        10" in result.output


def test_mkdir_and_rm(config_path, transport):
    assert run(config_path, "mkdir", "/srv/new/dir").exit_code == 0
    assert "/srv/new/dir" in transport.entries

    assert run(config_path, "rm", "/srv/new").exit_code == 0
    assert "/srv/new" not in transport.entries


def test_get_and_put(config_path, transport, tmp_path):
    transport.add_file("/srv/data.txt", b"payload")
    local = tmp_path / "data.txt"

    assert run(config_path, "get", "/srv/data.txt", str(local)).exit_code == 0
    assert local.read_bytes() == b"payload"

    assert run(config_path, "put", str(local), "/backup/data.txt").exit_code == 0
    assert transport.contents["/backup/data.txt"] == b"payload"


def test_first_use_host_key_saved(config_path):
    assert run(config_path, "exec", "echo", "hi").exit_code == 0

    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["connections"]["default"]["host_keys"] == {"example.com:22": "fp1"}
