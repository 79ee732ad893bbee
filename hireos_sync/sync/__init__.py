"""
hireos_sync.sync - Contact matching and sync

Matches GoHighLevel contacts to HireOS candidates by normalized name and
records the link on each candidate. Nothing is re-exported here because
hireos_sync.api imports sync.contact.
"""
