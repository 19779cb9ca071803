"""
Conflict resolution passes.

Both passes operate on the full current row set for their scope (one
fixture, one team, or everything) and are safe to re-run.
"""
