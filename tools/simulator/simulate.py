#!/usr/bin/env python3
"""Ponto clock-in traffic simulator.

Generates noisy GPS readings from simulated employees and submits them to
the validation endpoint.

Usage:
    # 10 employees clocking in around the configured sites for 2 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --employees 10 --duration 120

    # Poor GPS: most fixes between 80 m and 400 m accuracy
    python -m tools.simulator.simulate --server http://localhost:8000 --gps poor

    # Some employees far from every site
    python -m tools.simulator.simulate --server http://localhost:8000 --stray-ratio 0.3
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field

import httpx

# (min, max) accuracy radius in meters per GPS profile.
_GPS_PROFILES = {
    "good": (3, 25),
    "mixed": (5, 150),
    "poor": (80, 400),
}


@dataclass
class SimEmployee:
    employee_id: str
    lat: float
    lon: float
    home_site_id: str | None
    requests_sent: int = 0
    errors: int = 0
    outcomes: Counter = field(default_factory=Counter)


def offset(lat: float, lon: float, distance_m: float, bearing_deg: float) -> tuple[float, float]:
    """Move a point by ``distance_m`` along ``bearing_deg``."""
    bearing_rad = math.radians(bearing_deg)
    # Approximate: 1 degree latitude ≈ 111,000 m
    dlat = (distance_m * math.cos(bearing_rad)) / 111_000
    dlon = (distance_m * math.sin(bearing_rad)) / (111_000 * math.cos(math.radians(lat)))
    return lat + dlat, lon + dlon


def make_reading(employee: SimEmployee, gps: str, failure_rate: float) -> dict:
    """One device reading: a fix scattered by its own accuracy, or a failure."""
    if random.random() < failure_rate:
        return {"error": random.choice(["timeout", "position unavailable", "permission denied"])}

    low, high = _GPS_PROFILES[gps]
    accuracy = random.uniform(low, high)
    # Reported accuracy is roughly one sigma of the real error.
    lat, lon = offset(employee.lat, employee.lon,
                      abs(random.gauss(0, accuracy)), random.uniform(0, 360))
    return {
        "latitude": round(lat, 7),
        "longitude": round(lon, 7),
        "accuracy_m": round(accuracy, 1),
        "captured_at_ms": int(time.time() * 1000),
    }


async def run_employee(
    client: httpx.AsyncClient,
    employee: SimEmployee,
    args: argparse.Namespace,
    attempts: int,
) -> None:
    """Simulate one employee clocking in and out repeatedly."""
    interval = 60.0 / args.clocks_per_minute
    end_time = time.monotonic() + args.duration

    while time.monotonic() < end_time:
        payload = {
            "employee_id": employee.employee_id,
            "previous_site_id": employee.home_site_id,
            "readings": [make_reading(employee, args.gps, args.failure_rate)
                         for _ in range(attempts)],
        }
        try:
            resp = await client.post(
                f"{args.server}/api/v1/validate",
                content=json.dumps(payload),
                headers={"content-type": "application/json"},
            )
            if resp.status_code == 200:
                employee.requests_sent += 1
                employee.outcomes[resp.json()["reason"]] += 1
            else:
                employee.errors += 1
        except httpx.RequestError:
            employee.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    async with httpx.AsyncClient(timeout=30.0) as client:
        sites = (await client.get(f"{args.server}/api/v1/sites")).json()["sites"]
        client_config = (await client.get(f"{args.server}/api/v1/config")).json()

        if not sites:
            print("Server has no active sites configured; every request will be denied.")

        employees = []
        for _ in range(args.employees):
            if sites and random.random() >= args.stray_ratio:
                site = random.choice(sites)
                lat, lon = offset(site["latitude"], site["longitude"],
                                  random.uniform(0, site["nominal_radius_m"]),
                                  random.uniform(0, 360))
                home = site["id"]
            else:
                lat, lon = args.stray_center
                lat, lon = offset(lat, lon, random.uniform(1_000, 20_000), random.uniform(0, 360))
                home = None
            employees.append(SimEmployee(employee_id=str(uuid.uuid4()), lat=lat, lon=lon,
                                         home_site_id=home))

        print(f"Starting simulation: {args.employees} employees, "
              f"{args.clocks_per_minute} clock actions/min each")
        print(f"  Sites: {len(sites)}")
        print(f"  GPS profile: {args.gps} (failure rate {args.failure_rate:.0%})")
        print(f"  Duration: {args.duration}s")
        print(f"  Server: {args.server}")
        print()

        start = time.monotonic()
        await asyncio.gather(*(
            run_employee(client, emp, args, client_config["max_attempts"])
            for emp in employees
        ))
        elapsed = time.monotonic() - start

        outcomes: Counter = Counter()
        for emp in employees:
            outcomes.update(emp.outcomes)

        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Requests: {sum(e.requests_sent for e in employees)}")
        print(f"  Errors: {sum(e.errors for e in employees)}")
        for reason, count in outcomes.most_common():
            print(f"  {reason}: {count}")

        resp = await client.get(f"{args.server}/api/v1/stats")
        if resp.status_code == 200:
            stats = resp.json()
            print(f"\nServer stats:")
            print(f"  Validations: {stats['validations']}")
            print(f"  Allowed / denied: {stats['allowed']} / {stats['denied']}")
            print(f"  Location errors: {stats['location_errors']}")
            print(f"  Active employees: {stats['active_employees']['total']}")


def main():
    parser = argparse.ArgumentParser(description="Ponto clock-in traffic simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--employees", type=int, default=5, help="Number of simulated employees")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--clocks-per-minute", type=float, default=2,
                        help="Clock actions per minute per employee")
    parser.add_argument("--gps", choices=sorted(_GPS_PROFILES), default="mixed",
                        help="GPS accuracy profile")
    parser.add_argument("--failure-rate", type=float, default=0.1,
                        help="Probability that a single fix fails")
    parser.add_argument("--stray-ratio", type=float, default=0.1,
                        help="Share of employees placed away from every site")
    parser.add_argument("--stray-center", type=str, default="-23.5505,-46.6333",
                        help="Center lat,lon for stray employees (default: São Paulo)")

    args = parser.parse_args()

    lat, lon = args.stray_center.split(",")
    args.stray_center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
