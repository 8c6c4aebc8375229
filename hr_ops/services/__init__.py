"""
Services Layer
Stateless entry points used by routes and other collaborators.

Services should:
- Delegate every state change to the business contexts
- Not hold references to entities across calls
"""
