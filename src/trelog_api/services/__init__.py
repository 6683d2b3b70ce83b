"""Services for the training log: analytics, search, export, drafts, storage."""
