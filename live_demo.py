#!/usr/bin/env python
"""
╔══════════════════════════════════════════════════════════════════════════════╗
║                         PULSECHAIN LIVE DEMO                                  ║
╚══════════════════════════════════════════════════════════════════════════════╝

Walks through the chain core without any network:
- Genesis block
- Submitting readings
- A stale submission losing to fork choice
- Many producers at once
- Tamper detection

Pass --pause to stop between sections.
"""

import dataclasses
import sys
import threading

from pulsechain.blockchain.errors import ChainNotExtended, PayloadParseError
from pulsechain.blockchain.ledger import chain_to_json, chain_from_json
from pulsechain.blockchain.validation import explain_chain, is_chain_valid
from pulsechain.integration.arbitrator import create_arbitrator


PAUSE = "--pause" in sys.argv


def print_header(title):
    """Print a formatted section header"""
    print("\n" + "═" * 70)
    print(f"  {title}")
    print("═" * 70)


def print_step(step_num, description):
    """Print a numbered step"""
    print(f"\n  [{step_num}] {description}")


def pause(message="Press ENTER to continue..."):
    """Pause for presenter to explain"""
    if PAUSE:
        print(f"\n  [PAUSE] {message}")
        input()


def main():
    print("\n" + "╔" + "═" * 68 + "╗")
    print("║" + "PULSECHAIN - SHARED HEART-RATE LEDGER".center(68) + "║")
    print("╚" + "═" * 68 + "╝")

    arbitrator = create_arbitrator()
    store = arbitrator.store

    # ------------------------------------------------------------------
    print_header("1. GENESIS")
    genesis = store.tip()
    print(f"\n{genesis}")
    pause()

    # ------------------------------------------------------------------
    print_header("2. SUBMITTING READINGS")
    print_step(1, "A late producer reads the tip before anyone else writes")
    late = arbitrator.begin()
    print(f"      {late}")

    print_step(2, "Submitting 64 BPM")
    block = arbitrator.submit(64)
    print(f"\n{block}")

    print_step(3, "Submitting 'abc' from a raw text client")
    try:
        arbitrator.submit_text("abc")
    except PayloadParseError as e:
        print(f"      Skipped: {e}")
    pause()

    # ------------------------------------------------------------------
    print_header("3. STALE SUBMISSION")
    print_step(1, "The late producer builds 70 BPM on the old genesis tip")
    late.build(70)
    try:
        arbitrator.commit(late)
    except ChainNotExtended as e:
        print(f"      Rejected: {e}")
    print(f"      Chain length is still {store.length}, tip payload {store.tip().payload}")
    pause()

    # ------------------------------------------------------------------
    print_header("4. CONCURRENT PRODUCERS")
    threads = [threading.Thread(target=arbitrator.submit, args=(60 + i,)) for i in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    chain = store.snapshot()
    print(f"\n      Chain length: {len(chain)}")
    print(f"      Indexes: {[b.index for b in chain]}")
    print(f"      Valid: {is_chain_valid(chain, store.genesis)}")
    print(f"      Accepted: {arbitrator.accepted}  Rejected: {arbitrator.rejected}")
    pause()

    # ------------------------------------------------------------------
    print_header("5. TAMPER DETECTION")
    loaded = list(chain_from_json(chain_to_json(chain)))
    print_step(1, f"Round trip through JSON valid: {is_chain_valid(loaded, store.genesis)}")
    loaded[3] = dataclasses.replace(loaded[3], payload=180)
    print_step(2, "Rewriting block 3 to read 180 BPM")
    print(f"      Valid: {is_chain_valid(loaded, store.genesis)} ({explain_chain(loaded, store.genesis)})")

    print("\n" + "═" * 70)
    print("  Demo complete")
    print("═" * 70 + "\n")


if __name__ == "__main__":
    main()
