"""Domain services: authorization, session lifecycle, booking gate, reviews, ledger"""
