"""
Use cases of the cardhub backend.

Each service orchestrates a DocumentStore to implement one business rule set
(slug allocation, quotas, card reads/writes, stats, accounts). Routers call
these services and never touch the store directly.
"""
