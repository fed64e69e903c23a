#!/usr/bin/env python3
"""
wp_cpt_bridge – WordPress custom post types & taxonomies for the shop.

Public modules:
- wp_cpt_bridge.app           – FastAPI app & routing
- wp_cpt_bridge.cli           – click management CLI
- wp_cpt_bridge.config        – Settings via pydantic-settings
- wp_cpt_bridge.schemas       – Pydantic models
- wp_cpt_bridge.loader        – read-through metadata cache
- wp_cpt_bridge.observers     – event handlers
- wp_cpt_bridge.wordpress_api – REST helpers & simulated WordPress context
"""
# This file mainly exists to mark the package and for docs.
