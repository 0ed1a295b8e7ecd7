"""Interactive menu — pure state transitions plus a rich terminal driver."""
