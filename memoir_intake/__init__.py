"""
memoir-intake: onboarding and intake routing for a memoir-writing service.

Main features:
- Multi-path onboarding wizard with a guarded, immutable state machine
- Keyword classification of interview prompts into seven topics
- Routing of topics to users, life_event or user_profile storage
- One-shot migration of profile data that was filed as life events
"""
