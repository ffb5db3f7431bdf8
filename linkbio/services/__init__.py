"""
Services module for business logic separation.

Profile reads, comments, tracking counters, admin moderation, AI writing
help and music search live here, along with the pure URL helpers
(embed classification, allowlists, link icons, rich text) they share.
Endpoints stay thin and delegate to these.
"""
