"""
Office Nexus Ledger - Routers Package

FastAPI route handlers, all scoped under /api/v1/companies/{company_id}.

Routers:
- ledger: posting, business events, reversals, trial balance, ledger reads
- tax: VAT, PAYE, CIT and QIT returns, tax summary
- payroll: payroll calculation and runs
- capital: share capital, shareholders, beneficial owners
- dividends: dividend declaration, distribution and payment
"""
