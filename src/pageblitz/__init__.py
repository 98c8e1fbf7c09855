"""
Pageblitz - Auto-generated websites for small businesses.

Packages:
- pageblitz: configuration, LLM + database clients, web app, CLI
- onboarding: conversational onboarding flow that personalizes a generated site
"""

__version__ = "1.0.0"
