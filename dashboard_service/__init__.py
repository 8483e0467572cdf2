"""Dashboard layout and widget-configuration service"""
