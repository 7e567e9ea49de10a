"""
Cocoa Connect - backend for the cocoa value-chain companion app.

Participants (producers, processing-site owners, storage/export operators and
organizations) onboard once, pick their place in the administrative hierarchy
and get a role-scoped profile stored in Supabase.

Packages:
- cocoa_connect: settings, Supabase access, secure storage, web app and CLI
- onboarding: role-conditional onboarding and location resolution
"""

__version__ = "1.0.0"
