"""Pure domain layer: records, workflow definitions, ports, clock. ZERO I/O."""
