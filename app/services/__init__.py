"""
Office Nexus Ledger - Services Package

Business logic services.

Modules:
- chart_of_accounts: static standard chart and payment-method routing
- ledger_store: append-only persistence of postings
- posting_engine: validation, idempotency and atomic commit of transactions
- event_encoder: business event -> balanced transaction
- transaction_service: encode + capital side effects + post
- reporting_service: trial balance, general ledger, summaries
- tax_calculators: VAT, PAYE, CIT and QIT returns
- payroll_service: PAYE/RSSB breakdown and payroll runs
- capital_service: share capital, shareholders, beneficial owners
- dividend_service: dividend declaration, distribution and payment
"""
