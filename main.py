"""
SSH System 命令行入口点

在配置好的 SSH 连接上执行命令和操作远程文件。
"""

import logging
import os
import sys
from ssh_system.cli import main as cli_main


def setup_logging():
    """设置日志配置"""
    log_level = os.getenv("SSH_SYSTEM_LOG_LEVEL", "INFO")
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # paramiko 的传输日志过于详细
    logging.getLogger("paramiko").setLevel(logging.WARNING)


def main():
    """主函数"""
    setup_logging()
    cli_main()


if __name__ == "__main__":
    main()
