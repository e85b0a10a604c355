"""
Host services: accessory registry and the bridge server
"""
