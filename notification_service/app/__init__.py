"""Notification Service application package"""
