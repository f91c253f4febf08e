"""Pajatso package"""
