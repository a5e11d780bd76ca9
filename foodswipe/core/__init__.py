"""Core logic: exceptions, session, pricing and the order state machine."""
