"""WeChat Reader HTTP API"""
