#!/usr/bin/env python3
"""
Command-line client for the URL shortener HTTP API.

Usage:
    python shortener_cli.py shorten <url> [--code CODE] [--ttl TTL]
    python shortener_cli.py analytics <code>
    python shortener_cli.py health

The server decides what a valid URL, code or TTL is; this client sends the
request as given and reports the server's answer.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Dict, Optional

import httpx


DEFAULT_SERVER = "http://localhost:3000"


class ShortenerCLI:
    """HTTP client for the shortener API."""
    
    def __init__(
        self,
        server: str = DEFAULT_SERVER,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize CLI.
        
        Args:
            server: Base URL of the shortener service
            token: Bearer token for authenticated endpoints
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.server = server.rstrip("/")
        self.token = token
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.AsyncClient(
            base_url=self.server,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
    
    async def close(self):
        await self.client.aclose()
    
    def _emit(self, payload: Dict[str, Any], error: bool = False) -> None:
        print(json.dumps(payload, indent=2), file=sys.stderr if error else sys.stdout)
    
    async def _call(self, method: str, path: str, **kwargs) -> int:
        """Send a request and print the JSON result.
        
        Returns:
            Process exit code (0 on 2xx)
        """
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            self._emit({"success": False, "error": f"Request failed: {e}"}, error=True)
            return 1
        
        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text}
        
        if response.is_success:
            self._emit({"success": True, **body})
            return 0
        
        self._emit(
            {
                "success": False,
                "status": response.status_code,
                "error": body.get("error", response.reason_phrase),
            },
            error=True,
        )
        return 1
    
    async def shorten(self, url: str, code: Optional[str] = None, ttl: Optional[str] = None) -> int:
        """Create a short link; uses the authenticated endpoint when a token is set."""
        payload = {"url": url}
        if code is not None:
            payload["code"] = code
        if ttl is not None:
            payload["ttl"] = ttl
        
        path = "/shorten" if self.token else "/api/shorten"
        return await self._call("POST", path, json=payload)
    
    async def analytics(self, code: str) -> int:
        """Fetch visit analytics for a code."""
        return await self._call("GET", f"/analytics/{code}")
    
    async def health(self) -> int:
        """Check service health."""
        return await self._call("GET", "/api/health")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="URL Shortener CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Shorten a URL (expires in 7 days)
  %(prog)s shorten https://example.com/long/url
  
  # Shorten with custom code and a 1 hour TTL
  %(prog)s shorten https://example.com/long/url --code mylink --ttl 1h
  
  # Visit analytics
  %(prog)s analytics mylink
  
  # Check health
  %(prog)s health
        """
    )
    
    parser.add_argument(
        "--server",
        default=os.getenv("SHORTENER_SERVER", DEFAULT_SERVER),
        help=f"Service base URL (default: from SHORTENER_SERVER env or {DEFAULT_SERVER})"
    )
    
    parser.add_argument(
        "--token",
        default=os.getenv("SHORTENER_TOKEN"),
        help="Bearer token (default: from SHORTENER_TOKEN env)"
    )
    
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")
    
    shorten_parser = subparsers.add_parser("shorten", help="Shorten a URL")
    shorten_parser.add_argument("url", help="URL to shorten")
    shorten_parser.add_argument("--code", help="Custom short code")
    shorten_parser.add_argument("--ttl", help="Time to live, e.g. 30m, 1h, 7d")
    
    analytics_parser = subparsers.add_parser("analytics", help="Show visit analytics")
    analytics_parser.add_argument("code", help="Short code")
    
    subparsers.add_parser("health", help="Check service health")
    
    return parser


async def main(argv=None, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    
    if not args.command:
        parser.print_help()
        return 1
    
    cli = ShortenerCLI(server=args.server, token=args.token, transport=transport)
    
    try:
        if args.command == "shorten":
            return await cli.shorten(args.url, args.code, args.ttl)
        elif args.command == "analytics":
            return await cli.analytics(args.code)
        elif args.command == "health":
            return await cli.health()
        else:
            parser.print_help()
            return 1
    finally:
        await cli.close()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
