"""
Application layer - Use case orchestration around the domain.

Commands, queries and their handlers, the message bus, the unit of work
and the deferred domain event dispatch.
"""
