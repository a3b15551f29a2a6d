#!/usr/bin/env python3
"""loadsink result simulator.

Generates load-test result traffic for exercising the sink.

Usage:
    # 5 virtual users for 1 minute
    python -m tools.simulator.simulate --server http://localhost:8082 --users 5 --duration 60

    # Stress test: 50 users, batches of 20 results per POST
    python -m tools.simulator.simulate --server http://localhost:8082 --users 50 --batch 20
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import time
from dataclasses import dataclass

import httpx

METHODS = ["GET", "GET", "GET", "POST", "PUT", "PATCH", "DELETE"]
PATHS = ["/", "/login", "/api/items", "/api/items/42", "/search?q=boots", "/checkout"]


@dataclass
class SimUser:
    user_id: int
    base_url: str
    results_sent: int = 0
    errors: int = 0


def make_result(user: SimUser, error_rate: float) -> dict:
    """Create a single load-test result payload."""
    failed = random.random() < error_rate
    status = random.choice([500, 502, 503]) if failed else random.choices([200, 201, 204, 404], weights=[80, 8, 8, 4])[0]
    return {
        "url": user.base_url + random.choice(PATHS),
        "method": random.choice(METHODS),
        "status": status,
        "error": "upstream error" if failed else None,
        "size": random.randint(0, 64_000),
        "duration": int(random.lognormvariate(17.5, 0.6)),  # ~40ms median, in ns
        "timestamp": time.time_ns(),
    }


async def run_user(
    client: httpx.AsyncClient,
    user: SimUser,
    server_url: str,
    results_per_minute: float,
    duration_seconds: float,
    batch: int,
    error_rate: float,
) -> None:
    """Simulate a single virtual user reporting results."""
    interval = 60.0 / results_per_minute * batch
    end_time = time.monotonic() + duration_seconds

    while time.monotonic() < end_time:
        results = [make_result(user, error_rate) for _ in range(batch)]
        payload = results[0] if batch == 1 else {"results": results}

        try:
            resp = await client.post(
                f"{server_url}/api/v1/results",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                user.results_sent += len(results)
            else:
                user.errors += 1
        except httpx.RequestError:
            user.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    users = [SimUser(user_id=i, base_url=args.target) for i in range(args.users)]

    print(f"Starting simulation: {args.users} users, {args.results_per_minute} results/min each")
    print(f"  Target: {args.target}")
    print(f"  Batch: {args.batch}")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    async with httpx.AsyncClient(timeout=10.0) as client:
        tasks = [
            run_user(client, user, args.server, args.results_per_minute,
                     args.duration, args.batch, args.error_rate)
            for user in users
        ]
        await asyncio.gather(*tasks)

        elapsed = time.monotonic() - start
        total_sent = sum(u.results_sent for u in users)
        total_errors = sum(u.errors for u in users)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Total results sent: {total_sent}")
        print(f"  Total errors: {total_errors}")
        print(f"  Throughput: {total_sent / elapsed:.1f} results/sec")

        # Check sink stats
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError as exc:
            print(f"\nCould not fetch sink stats: {exc}")
            return
        if resp.status_code == 200:
            stats = resp.json()
            print("\nSink stats:")
            print(f"  Results received: {stats['results_received']}")
            print(f"  Records dispatched: {stats['records_dispatched']}")
            print(f"  Push errors: {stats['push_errors']}")
            print(f"  Queue depth: {stats['queue_depth']}")
            for name, col in stats["collectors"].items():
                print(f"  {name}: pending={col['pending']} errors={col['push_errors']}")


def main():
    parser = argparse.ArgumentParser(description="loadsink result simulator")
    parser.add_argument("--server", default="http://localhost:8082", help="Sink URL")
    parser.add_argument("--target", default="https://shop.example.com", help="Base URL reported in results")
    parser.add_argument("--users", type=int, default=5, help="Number of simulated users")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--results-per-minute", type=float, default=60, help="Results per minute per user")
    parser.add_argument("--batch", type=int, default=1, help="Results per POST")
    parser.add_argument("--error-rate", type=float, default=0.02, help="Fraction of failed requests")

    args = parser.parse_args()
    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
