"""Draw passes, pixel passes and the frame renderer."""
