#!/usr/bin/env python3
"""
Relay Smoke Check Script

Checks that a running token exchange relay answers its service endpoints
and, when an authorization code is supplied, performs one real exchange
and prints a redacted summary of the result.
"""

import sys
import asyncio
import json
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.shared.logging_utils import create_logger
from src.shared.security import preview_secret


class RelaySmokeCheck:
    """Runs smoke checks against a relay instance"""

    def __init__(self, base_url: str, timeout: float = 30.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.logger = create_logger("SMOKE-CHECK")
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def check_service_endpoints(self) -> Dict[str, bool]:
        """Check /health, / and the JSON 404 handler"""

        print("🔍 Checking relay endpoints...")
        expectations = {
            "/health": 200,
            "/": 200,
            "/does-not-exist": 404,
        }
        status = {}

        for path, expected in expectations.items():
            url = f"{self.base_url}{path}"
            try:
                response = await self.client.get(url)
                ok = response.status_code == expected and response.headers.get(
                    "content-type", "").startswith("application/json")
                status[path] = ok
                print(f"  {'✅' if ok else '❌'} GET {path} -> HTTP {response.status_code}")
            except httpx.HTTPError as e:
                status[path] = False
                print(f"  ❌ GET {path} - Connection failed ({e})")

        return status

    async def exchange(self, oauth_code: str, domain: str) -> Dict[str, Any]:
        """Perform one exchange and return a redacted summary"""

        print(f"\n🔄 Exchanging code {preview_secret(oauth_code, 10)} for {domain}")
        response = await self.client.post(
            f"{self.base_url}/api/exchangetoken",
            json={"oauth_code": oauth_code, "domain": domain}
        )
        try:
            data = response.json()
        except ValueError:
            print(f"  ❌ Relay answered HTTP {response.status_code} with a non-JSON body")
            data = {"error": "non_json_response", "message": response.headers.get("content-type")}

        summary = {
            "status_code": response.status_code,
            "success": response.status_code == 200 and "access_token" in data,
        }
        if "error" in data:
            summary["error"] = data["error"]
            summary["message"] = data.get("message") or data.get("error_description")
        for field in ("access_token", "refresh_token"):
            if field in data:
                summary[field] = preview_secret(data[field], 10)

        self.logger.log_relay_message(
            "SMOKE-CHECK", "RELAY",
            "Exchange Result",
            summary,
            success=summary["success"]
        )
        return summary

    async def cleanup(self):
        """Clean up resources"""
        await self.client.aclose()


async def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Smoke check a running token exchange relay"
    )
    parser.add_argument(
        "--url",
        default="http://localhost:3000",
        help="Relay base URL (default: http://localhost:3000)"
    )
    parser.add_argument(
        "--code",
        help="Authorization code to exchange (skips the exchange when omitted)"
    )
    parser.add_argument(
        "--domain",
        help="Tenant domain the code was issued for"
    )
    parser.add_argument(
        "--output",
        help="Save results to JSON file"
    )

    args = parser.parse_args()
    if args.code and not args.domain:
        parser.error("--domain is required together with --code")

    check = RelaySmokeCheck(args.url)
    results: Dict[str, Optional[Any]] = {}

    try:
        results["endpoints"] = await check.check_service_endpoints()
        if args.code:
            results["exchange"] = await check.exchange(args.code, args.domain)

        if args.output:
            with open(args.output, 'w') as f:
                json.dump(results, f, indent=2, default=str)
            print(f"\n💾 Results saved to: {args.output}")

        success = all(results["endpoints"].values())
        if "exchange" in results:
            success = success and results["exchange"]["success"]
        sys.exit(0 if success else 1)

    except KeyboardInterrupt:
        print("\n👋 Smoke check interrupted by user")
        sys.exit(130)
    except httpx.HTTPError as e:
        print(f"\n❌ Smoke check failed: {e}")
        sys.exit(1)
    finally:
        await check.cleanup()


if __name__ == "__main__":
    asyncio.run(main())
