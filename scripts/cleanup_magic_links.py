#!/usr/bin/env python3
"""清理过期的 Magic Link。

删除所有 expires_at 早于当前时间的链接（无论是否已使用）。
适合由 cron / k8s CronJob 定期调度。

使用方式：
    python scripts/cleanup_magic_links.py

    # 只查看统计，不删除
    python scripts/cleanup_magic_links.py --dry-run

    # 作废某个联系方式的全部有效链接
    python scripts/cleanup_magic_links.py --invalidate alice@example.com --guard web

    # JSON 输出
    python scripts/cleanup_magic_links.py --json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


async def run(args: argparse.Namespace) -> dict:
    from src.core.infrastructure.database.session import close_db
    from src.core.infrastructure.logging import setup_logging
    from src.core.infrastructure.redis import redis_client
    from src.modules.magic_auth.infrastructure.dependencies import (
        build_magic_auth_service,
    )

    setup_logging()
    service = build_magic_auth_service()
    report: dict = {}

    try:
        if args.invalidate:
            report["invalidated"] = await service.invalidate_links(
                args.invalidate, args.guard
            )

        report["before"] = (await service.get_stats(guard=args.guard)).model_dump()
        if not args.dry_run:
            report["deleted"] = await service.cleanup()
            report["after"] = (await service.get_stats(guard=args.guard)).model_dump()
    finally:
        await redis_client.close()
        await close_db()

    return report


def print_report(report: dict) -> None:
    before = report["before"]
    print("Magic link cleanup")
    print("=" * 40)
    if "invalidated" in report:
        print(f"  invalidated: {report['invalidated']}")
    print(
        f"  before: total={before['total']} used={before['used']} "
        f"expired={before['expired']} active={before['active']}"
    )
    if "deleted" in report:
        after = report["after"]
        print(f"  deleted: {report['deleted']}")
        print(
            f"  after:  total={after['total']} used={after['used']} "
            f"expired={after['expired']} active={after['active']}"
        )
    else:
        print("  dry run, nothing deleted")


def main() -> None:
    parser = argparse.ArgumentParser(description="Delete expired magic links")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print statistics",
    )
    parser.add_argument(
        "--invalidate",
        metavar="IDENTIFIER",
        help="Void every redeemable link of this email or phone first",
    )
    parser.add_argument("--guard", help="Restrict stats and invalidation to a guard")
    parser.add_argument("--json", action="store_true", help="Output in JSON format")
    args = parser.parse_args()

    report = asyncio.run(run(args))

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)


if __name__ == "__main__":
    main()
