#!/usr/bin/env python3
"""Accident dataset simulator.

Generates clustered accident datasets and posts them to the hotspot server.

Usage:
    # 4 tight clusters of 12 accidents plus 60 scattered ones around Lyon
    python -m tools.simulator.simulate --server http://localhost:8000 --clusters 4 --points-per-cluster 12

    # Stress test: 20 concurrent runs of 3000 points each
    python -m tools.simulator.simulate --server http://localhost:8000 --runs 20 --noise 3000

    # Specific location and parameters
    python -m tools.simulator.simulate --center 48.8566,2.3522 --epsilon-km 0.3 --min-pts 4
"""

from __future__ import annotations

import argparse
import asyncio
import math
import random
import time

import httpx

FACTORS = [
    "speeding",
    "poor visibility",
    "road design",
    "distracted driving",
    "weather conditions",
    "traffic congestion",
]


def offset_point(lat: float, lng: float, radius_km: float) -> tuple[float, float]:
    """Random point within ``radius_km`` of (lat, lng)."""
    angle = random.uniform(0, 2 * math.pi)
    dist_km = radius_km * math.sqrt(random.random())
    dlat = (dist_km / 111.0) * math.cos(angle)
    dlng = (dist_km / (111.0 * math.cos(math.radians(lat)))) * math.sin(angle)
    return lat + dlat, lng + dlng


def make_dataset(args: argparse.Namespace) -> list[dict]:
    """Build clusters of accidents plus scattered noise."""
    center_lat, center_lng = args.center
    points: list[dict] = []

    def add(lat: float, lng: float, severity: int, factors: list[str]) -> None:
        points.append({
            "id": len(points),
            "lat": round(lat, 6),
            "lng": round(lng, 6),
            "severity": severity,
            "factors": factors,
        })

    for _ in range(args.clusters):
        c_lat, c_lng = offset_point(center_lat, center_lng, args.radius_km)
        # Each cluster leans towards one dominant factor.
        dominant = random.choice(FACTORS)
        for _ in range(args.points_per_cluster):
            lat, lng = offset_point(c_lat, c_lng, args.cluster_radius_km)
            factor = dominant if random.random() < 0.7 else random.choice(FACTORS)
            severity = random.choices([1, 2, 3, 4, 5], weights=[15, 25, 30, 20, 10])[0]
            add(lat, lng, severity, [factor])

    for _ in range(args.noise):
        lat, lng = offset_point(center_lat, center_lng, args.radius_km)
        add(lat, lng, random.randint(1, 5), [random.choice(FACTORS)])

    return points


async def run_once(client: httpx.AsyncClient, args: argparse.Namespace, run_no: int) -> dict | None:
    payload = {
        "points": make_dataset(args),
        "epsilon_km": args.epsilon_km,
        "min_pts": args.min_pts,
        "classify": args.classify,
    }
    try:
        resp = await client.post(f"{args.server}/api/v1/hotspots", json=payload)
    except httpx.RequestError as e:
        print(f"  run {run_no}: request failed: {e!r}")
        return None
    if resp.status_code != 200:
        print(f"  run {run_no}: HTTP {resp.status_code} {resp.text[:200]}")
        return None
    return resp.json()


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lng = args.center
    print(f"Starting simulation: {args.runs} run(s)")
    print(f"  Center: {center_lat:.4f}, {center_lng:.4f}")
    print(f"  Clusters: {args.clusters} x {args.points_per_cluster} points "
          f"(radius {args.cluster_radius_km} km), noise: {args.noise}")
    print(f"  Parameters: epsilon={args.epsilon_km} km, min_pts={args.min_pts}")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()
    async with httpx.AsyncClient(timeout=120.0) as client:
        results = await asyncio.gather(*(run_once(client, args, i) for i in range(args.runs)))
    elapsed = time.monotonic() - start

    ok = [r for r in results if r is not None]
    print(f"Simulation complete in {elapsed:.1f}s, {len(ok)}/{args.runs} runs succeeded")
    for i, report in enumerate(ok):
        run = report["run"]
        print(f"  run {i}: {report['total']} hotspots, {run['points_clustered']}/"
              f"{run['points_total']} points clustered, {run['duration_ms']} ms")
        if args.verbose:
            for h in report["hotspots"]:
                risk = (h.get("risk") or {}).get("riskLevel", "-")
                print(f"    {h['id']}: {h['accidentCount']} accidents at "
                      f"{h['lat']:.4f},{h['lng']:.4f} severity {h['averageSeverity']} "
                      f"risk {risk} [{h['contributingFactors']}]")

    # Check server stats
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{args.server}/api/v1/stats")
        if resp.status_code == 200:
            stats = resp.json()
            print("\nServer stats:")
            print(f"  Runs completed: {stats['runs_completed']}")
            print(f"  Hotspots reported: {stats['hotspots_reported']}")
            print(f"  Classifier failures: {stats['classifier_failures']}")
            print(f"  Max run time: {stats['max_run_ms']} ms")
    except httpx.RequestError:
        pass


def main():
    parser = argparse.ArgumentParser(description="Accident dataset simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--runs", type=int, default=1, help="Concurrent clustering runs")
    parser.add_argument("--clusters", type=int, default=4, help="Number of dense clusters")
    parser.add_argument("--points-per-cluster", type=int, default=12,
                        help="Accidents per cluster")
    parser.add_argument("--cluster-radius-km", type=float, default=0.2,
                        help="Radius of each cluster in km")
    parser.add_argument("--noise", type=int, default=60, help="Scattered accidents")
    parser.add_argument("--center", type=str, default="45.764,4.835",
                        help="Center lat,lng (default: Lyon)")
    parser.add_argument("--radius-km", type=float, default=5.0, help="Scatter radius in km")
    parser.add_argument("--epsilon-km", type=float, default=0.5, help="Neighbor distance in km")
    parser.add_argument("--min-pts", type=int, default=5, help="Minimum neighbors")
    parser.add_argument("--classify", action="store_true", help="Ask for risk levels")
    parser.add_argument("--verbose", action="store_true", help="Print every hotspot")

    args = parser.parse_args()

    # Parse center
    lat, lng = args.center.split(",")
    args.center = (float(lat), float(lng))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
