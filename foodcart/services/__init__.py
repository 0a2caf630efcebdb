"""
                        Services Module

Business logic on top of the repositories. External collaborators
follow the hybrid pattern: a Mock implementation for development and
a Real one for production, chosen by ENV_MODE.

Services:
    - images: Pillow image compression to JPEG data URLs
    - storage: Blob storage backends (in-memory / Supabase) and the uploader
    - notifications: New-order email (mock / SendGrid)
    - cart: Cart state and order history view
    - menu: Dish image resolution and the grouped menu
    - orders: Order submission and meal photos
"""
