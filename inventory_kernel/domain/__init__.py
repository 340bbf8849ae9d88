"""Pure domain layer for the inventory kernel: clock, identity, policy, DTOs, capacity math."""
