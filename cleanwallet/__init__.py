"""
CleanWallet - personal finance tracker with receipt scanning.

Record expenses and income per card and category, review spending
summaries, and fill in transactions from banking screenshots or receipt
photos with a vision-language model.
"""

__version__ = "1.0.0"
