"""Analytics Service application package"""
