#!/usr/bin/env python3
"""Kavalan fleet simulator.

Registers a number of boats, then drives them around offshore while they
report positions, chat with each other and, now and then, raise an SOS.

Usage:
    # 5 boats off Chennai for 10 minutes
    python -m tools.simulator.simulate --server http://localhost:8000 --boats 5 --duration 600

    # Busy chat traffic
    python -m tools.simulator.simulate --boats 20 --updates-per-minute 30 --chat-ratio 0.5

    # Somewhere else, with SOS cases
    python -m tools.simulator.simulate --center 8.76,78.13 --sos-probability 0.01
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import random
import time
from dataclasses import dataclass

import httpx

JSON = {"content-type": "application/json"}

CHAT_LINES = (
    "Good catch near the reef",
    "Heading back before dark",
    "Anyone seen the weather bulletin?",
    "Nets are out, stay clear",
    "Engine running rough, will check in later",
)


@dataclass
class SimBoat:
    boat_id: str
    lat: float
    lon: float
    bearing: float
    speed_kmh: float
    updates_sent: int = 0
    messages_sent: int = 0
    sos_raised: int = 0
    errors: int = 0

    def location(self) -> dict:
        return {
            "latitude": round(self.lat, 6),
            "longitude": round(self.lon, 6),
            "accuracy": random.randint(3, 30),
        }


def make_profile(index: int) -> dict:
    return {
        "name": f"Sim Fisherman {index}",
        "phone": f"+9198{random.randint(0, 99_999_999):08d}",
        "emergency_contacts": [
            {"name": f"Contact {index}", "relationship": "family",
             "phone": f"+9197{random.randint(0, 99_999_999):08d}", "is_primary": True},
        ],
    }


def move_boat(boat: SimBoat, dt_seconds: float) -> None:
    """Drift along the current heading with small course and speed changes."""
    boat.bearing = (boat.bearing + random.uniform(-20, 20)) % 360
    boat.speed_kmh = max(2.0, min(30.0, boat.speed_kmh + random.uniform(-2, 2)))

    distance_km = boat.speed_kmh * dt_seconds / 3600
    bearing_rad = math.radians(boat.bearing)

    # Approximate: 1 degree latitude is about 111 km
    boat.lat += (distance_km * math.cos(bearing_rad)) / 111.0
    boat.lon += (distance_km * math.sin(bearing_rad)) / (111.0 * math.cos(math.radians(boat.lat)))


async def _post(client: httpx.AsyncClient, url: str, payload: dict) -> httpx.Response:
    return await client.post(url, content=json.dumps(payload), headers=JSON)


async def register(client: httpx.AsyncClient, server_url: str, boat: SimBoat, index: int) -> bool:
    try:
        resp = await client.put(
            f"{server_url}/api/v1/boats/{boat.boat_id}",
            content=json.dumps(make_profile(index)),
            headers=JSON,
        )
    except httpx.RequestError:
        return False
    return resp.status_code == 200


async def run_boat(
    client: httpx.AsyncClient,
    boat: SimBoat,
    fleet: list[SimBoat],
    args: argparse.Namespace,
) -> None:
    """Simulate one boat until the duration runs out."""
    interval = 60.0 / args.updates_per_minute
    end_time = time.monotonic() + args.duration
    server = args.server

    while time.monotonic() < end_time:
        move_boat(boat, interval)

        try:
            resp = await _post(client, f"{server}/api/v1/navigation/{boat.boat_id}/location",
                               boat.location())
            if resp.status_code == 200:
                boat.updates_sent += 1
            else:
                boat.errors += 1

            if len(fleet) > 1 and random.random() < args.chat_ratio:
                other = random.choice([b for b in fleet if b is not boat])
                resp = await _post(client, f"{server}/api/v1/chat/messages", {
                    "from_boat": boat.boat_id,
                    "to_boat": other.boat_id,
                    "body": random.choice(CHAT_LINES),
                })
                if resp.status_code == 200:
                    boat.messages_sent += 1
                else:
                    boat.errors += 1

            if random.random() < args.sos_probability:
                resp = await _post(client, f"{server}/api/v1/sos", {
                    "boat_id": boat.boat_id,
                    "location": boat.location(),
                    "message": "Simulated emergency",
                })
                if resp.status_code == 201:
                    boat.sos_raised += 1
                else:
                    boat.errors += 1
        except httpx.RequestError:
            boat.errors += 1

        await asyncio.sleep(interval)


async def run_simulation(args: argparse.Namespace) -> None:
    """Run the full simulation."""
    center_lat, center_lon = args.center
    boats = []
    for i in range(args.boats):
        # Scatter boats within radius of center
        angle = random.uniform(0, 2 * math.pi)
        dist_km = random.uniform(0, args.radius_km)
        lat = center_lat + (dist_km / 111.0) * math.cos(angle)
        lon = center_lon + (dist_km / (111.0 * math.cos(math.radians(center_lat)))) * math.sin(angle)

        boats.append(SimBoat(
            boat_id=f"TN{args.district:02d}-SM{i:03d}",
            lat=lat,
            lon=lon,
            bearing=random.uniform(0, 360),
            speed_kmh=random.uniform(8, 20),
        ))

    print(f"Starting simulation: {args.boats} boats, {args.updates_per_minute} updates/min each")
    print(f"  Center: {center_lat:.4f}, {center_lon:.4f}")
    print(f"  Radius: {args.radius_km} km")
    print(f"  Duration: {args.duration}s")
    print(f"  Server: {args.server}")
    print()

    start = time.monotonic()

    # Chat sends wait for the simulated radio, so allow for its delay.
    async with httpx.AsyncClient(timeout=30.0) as client:
        registered = await asyncio.gather(*(
            register(client, args.server, boat, i) for i, boat in enumerate(boats)
        ))
        if not all(registered):
            print(f"Warning: {registered.count(False)} boats failed to register")

        await asyncio.gather(*(run_boat(client, boat, boats, args) for boat in boats))

        elapsed = time.monotonic() - start
        print(f"\nSimulation complete in {elapsed:.1f}s")
        print(f"  Location updates: {sum(b.updates_sent for b in boats)}")
        print(f"  Chat messages: {sum(b.messages_sent for b in boats)}")
        print(f"  SOS cases: {sum(b.sos_raised for b in boats)}")
        print(f"  Errors: {sum(b.errors for b in boats)}")

        # Check server stats
        try:
            resp = await client.get(f"{args.server}/api/v1/stats")
        except httpx.RequestError:
            return
        if resp.status_code == 200:
            stats = resp.json()
            print("\nServer stats:")
            print(f"  Messages sent: {stats['messages_sent']}")
            print(f"  Messages delivered: {stats['messages_delivered']}")
            print(f"  Notifications failed: {stats['notifications_failed']}")
            print(f"  Active boats: {stats['active_boats']['total']}")


def main():
    parser = argparse.ArgumentParser(description="Kavalan fleet simulator")
    parser.add_argument("--server", default="http://localhost:8000", help="Server URL")
    parser.add_argument("--boats", type=int, default=5, help="Number of simulated boats")
    parser.add_argument("--duration", type=int, default=60, help="Simulation duration in seconds")
    parser.add_argument("--updates-per-minute", type=float, default=6,
                        help="Location updates per minute per boat")
    parser.add_argument("--chat-ratio", type=float, default=0.2,
                        help="Chance of a chat message with each update")
    parser.add_argument("--sos-probability", type=float, default=0.0,
                        help="Chance of an SOS with each update")
    parser.add_argument("--center", type=str, default="13.08,80.40",
                        help="Center lat,lon (default: off Chennai)")
    parser.add_argument("--radius-km", type=float, default=15.0, help="Scatter radius in km")
    parser.add_argument("--district", type=int, default=99, help="District code for boat ids")

    args = parser.parse_args()

    # Parse center
    lat, lon = args.center.split(",")
    args.center = (float(lat), float(lon))

    asyncio.run(run_simulation(args))


if __name__ == "__main__":
    main()
