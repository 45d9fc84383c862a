"""
Events app: events, ticket packages and attendee registrations.

Event records are maintained elsewhere (venue/event management); this app
reads them to price registrations. Registration carries the payment state
that the payments app reconciles against provider notifications.

Related apps:
    - payments: initializes, verifies and reconciles registration payments
"""
