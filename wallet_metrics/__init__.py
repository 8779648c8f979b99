"""
Wallet metrics over the Nansen API: trading volume, Hyperliquid perpetuals
and DeFi staking/lending health.
"""
