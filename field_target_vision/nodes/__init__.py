"""
Entry Points
============

    vision_main   Capture, detect and publish loop (console script: field_target_vision)
"""
