"""
inventory_batch -- best-effort bulk execution of stock transfers.

Runs many transfers one after another, each in its own atomic unit, and
reports per-request success or failure.  A failed request never undoes an
earlier success.

Architecture:
    inventory_batch/ is a top-level package.  Nothing in inventory_kernel/
    imports from inventory_batch.
"""
