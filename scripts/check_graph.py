"""
Validate (and optionally repair) the pin graph of a campus
Run from project root: python scripts/check_graph.py <campus_id> [--repair]
"""
import asyncio
import sys
import os
from motor.motor_asyncio import AsyncIOMotorClient
from beanie import init_beanie

# Add parent directory to path to import models
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import DATABASE_NAME, DATABASE_URL
from models import Campus, Pin
from services.graph_validation import repair_graph, validate_graph
from services.pin_store import pin_store


def _print_report(validation):
    print(f"Valid: {'✅' if validation.is_valid else '❌'}")
    print(f"Components: {validation.components}")
    print(f"Isolated pins: {', '.join(validation.isolated_nodes) or '-'}")
    print(f"Dead ends: {', '.join(validation.dead_ends) or '-'}")
    for edge in validation.missing_reverse_edges:
        print(f"  missing reverse edge: {edge['to']} does not list {edge['from']}")
    for edge in validation.dangling_references:
        print(f"  dangling reference: {edge['from']} -> {edge['to']}")
    for warning in validation.warnings:
        print(f"  ⚠️ {warning}")


async def check_graph(campus_id: str, repair: bool):
    client = AsyncIOMotorClient(DATABASE_URL)
    await init_beanie(database=client[DATABASE_NAME], document_models=[Campus, Pin])

    pins = await pin_store.list_pins(campus_id=campus_id, include_invisible=True)
    print(f"📊 {len(pins)} pins in campus {campus_id}")
    _print_report(validate_graph(pins))

    if repair:
        applied = await repair_graph(pin_store, campus_id)
        print(f"\n🔧 Added {len(applied['added'])} reverse edges, removed {len(applied['removed'])} references")
        if applied["failed"]:
            print(f"❌ {len(applied['failed'])} edits failed")
        pins = await pin_store.list_pins(campus_id=campus_id, include_invisible=True)
        _print_report(validate_graph(pins))


def main():
    if len(sys.argv) < 2:
        print("Usage: python scripts/check_graph.py <campus_id> [--repair]")
        sys.exit(1)
    asyncio.run(check_graph(sys.argv[1], "--repair" in sys.argv[2:]))


if __name__ == "__main__":
    main()
