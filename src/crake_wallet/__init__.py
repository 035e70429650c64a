"""crake-wallet: transaction lifecycle management for EVM wallets.

Fee estimation, draft validation, explicit confirmation, submission,
a durable transaction history and on-demand reconciliation of pending
transactions across Ethereum, Polygon, Base, Arbitrum and Optimism.
"""
