"""
命令行接口

在配置好的连接上执行命令、列出目录、查看属性以及在本地和远程之间复制文件。
"""

import logging
import sys
from datetime import datetime
from typing import Optional

import click

from . import __version__
from .config import ConfigManager
from .exceptions import SSHSystemError
from .file import LocalFileSystem

logger = logging.getLogger(__name__)


def _open_system(ctx: click.Context):
    manager: ConfigManager = ctx.obj["config"]
    return manager.create_system(ctx.obj["connection"])


def _finish(ctx: click.Context, system):
    """保存首次连接时记录的主机指纹并断开"""
    manager: ConfigManager = ctx.obj["config"]
    name = ctx.obj["connection"]
    server = manager.get_connection(name)
    if server is not None and system.get_host_keys() != server.host_keys:
        manager.remember_host_keys(name, system)
    system.disconnect()


@click.group()
@click.version_option(__version__)
@click.option("--config", "config_path", default=None, help="配置文件路径 (env: SSH_SYSTEM_CONFIG)")
@click.option("--connection", "-c", default="default", show_default=True, help="连接名称")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], connection: str):
    """SSH 远程文件系统与命令执行工具"""
    ctx.ensure_object(dict)
    ctx.obj["config"] = ConfigManager(config_path)
    ctx.obj["connection"] = connection


@cli.command("exec")
@click.argument("command", nargs=-1, required=True)
@click.pass_context
def exec_command(ctx: click.Context, command):
    """在远程主机上执行命令"""
    system = _open_system(ctx)
    try:
        result = system.execute(" ".join(command), want_exit_code=True)
        for line in result.output:
            click.echo(line)
    finally:
        _finish(ctx, system)
    sys.exit(result.exit_code or 0)


@cli.command("ls")
@click.argument("path", default=".")
@click.option("--recursive", "-r", is_flag=True, help="递归列出子目录")
@click.pass_context
def list_directory(ctx: click.Context, path: str, recursive: bool):
    """列出远程目录"""
    system = _open_system(ctx)
    try:
        fs = system.get_file_system()
        for local_path in sorted(fs.get_file(path).read_directory(recursive)):
            click.echo(local_path)
    finally:
        _finish(ctx, system)


@cli.command("stat")
@click.argument("path")
@click.pass_context
def stat_file(ctx: click.Context, path: str):
    """查看远程文件属性"""
    system = _open_system(ctx)
    try:
        file = system.get_file_system().get_file(path)
        click.echo(f"path:        {file.get_local_path()}")
        click.echo(f"directory:   {file.is_directory()}")
        click.echo(f"size:        {file.get_size()}")
        click.echo(f"permissions: {file.get_permissions():o}")
        click.echo(
            f"modified:    {datetime.fromtimestamp(file.get_modification_time()).isoformat()}"
        )
    finally:
        _finish(ctx, system)


@cli.command("mkdir")
@click.argument("path")
@click.pass_context
def make_directory(ctx: click.Context, path: str):
    """递归创建远程目录"""
    system = _open_system(ctx)
    try:
        system.get_file_system().get_file(path).create()
    finally:
        _finish(ctx, system)


@cli.command("rm")
@click.argument("path")
@click.pass_context
def remove(ctx: click.Context, path: str):
    """删除远程文件或目录"""
    system = _open_system(ctx)
    try:
        system.get_file_system().get_file(path).delete()
    finally:
        _finish(ctx, system)


@cli.command("get")
@click.argument("remote_path")
@click.argument("local_path")
@click.pass_context
def download(ctx: click.Context, remote_path: str, local_path: str):
    """下载远程文件或目录"""
    system = _open_system(ctx)
    try:
        source = system.get_file_system().get_file(remote_path)
        source.copy(LocalFileSystem().get_file(local_path))
    finally:
        _finish(ctx, system)


@cli.command("put")
@click.argument("local_path")
@click.argument("remote_path")
@click.pass_context
def upload(ctx: click.Context, local_path: str, remote_path: str):
    """上传本地文件或目录"""
    system = _open_system(ctx)
    try:
        source = LocalFileSystem().get_file(local_path)
        source.copy(system.get_file_system().get_file(remote_path))
    finally:
        _finish(ctx, system)


def main():
    """命令行入口，SSH 系统异常转换为退出码 1"""
    try:
        cli(standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.exceptions.Abort:
        sys.exit(1)
    except SSHSystemError as e:
        logger.error(str(e))
        sys.exit(1)
