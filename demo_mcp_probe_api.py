# demo_mcp_probe_api.py
# Version: v1
#
# Demo: probe an API with the MCP-style probe_api task and generate a ToolJet
# import file from the inferred schema.
#
# Usage:
#
#   export TOOLJET_PROBE_MOCK_MODE=1          # or point at a real API
#   export TOOLJET_PROBE_DEMO_URL="http://localhost:3001/orders?page=1&limit=10"
#   export TOOLJET_PROBE_DEMO_TOKEN="demo"
#   python demo_mcp_probe_api.py

import asyncio
import os
from typing import Any, Dict, List

from tooljet_probe_mcp.tools import tasks


DEMO_URL = os.environ.get("TOOLJET_PROBE_DEMO_URL", "http://localhost:3001/orders?page=1&limit=10")
DEMO_TOKEN = os.environ.get("TOOLJET_PROBE_DEMO_TOKEN", "demo")
OUTPUT_DIR = os.environ.get("TOOLJET_PROBE_DEMO_OUTPUT", "generated")


async def main() -> None:
    print("Calling MCP task: probe_api()")
    print(f"URL: {DEMO_URL}")
    print()

    result: Dict[str, Any] = await tasks.probe_api(
        url=DEMO_URL,
        headers={"Authorization": f"Bearer {DEMO_TOKEN}"},
    )

    if not result.get("ok"):
        print(f"Probe failed: {result.get('message')}")
        print(f"Hint: {result.get('hints')}")
        return

    fields: List[Dict[str, Any]] = result.get("fields", [])
    print(f"Sample path: {result.get('samplePath')}")
    print(f"Fields inferred: {len(fields)}")
    for f in fields:
        print(f"- {f.get('name')}: {f.get('type')}  sample={f.get('sample')!r}")

    pagination = result.get("pagination")
    print(f"Pagination: {pagination.get('type') if pagination else 'none detected'}")
    print()

    generated = await tasks.generate_config(schema=result, output_dir=OUTPUT_DIR)
    print(f"Wrote {generated.get('filename')} -> {generated.get('path')}")


if __name__ == "__main__":
    asyncio.run(main())
