"""Product Service application package"""
