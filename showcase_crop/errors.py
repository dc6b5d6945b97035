"""
Pipeline exceptions.

Every stage failure derives from ``CropError`` and carries a short
``user_message`` the host UI can show next to a retry action.
"""


class CropError(Exception):
    """Base exception for crop pipeline failures."""
    user_message = "Something went wrong while cropping the image."


class DecodeError(CropError):
    """Source could not be read or decoded into a raster."""
    user_message = "This image could not be opened. Please choose another file."


class CompositeError(CropError):
    """Rotated buffer could not be allocated or drawn."""
    user_message = "This image is too large to rotate. Try a smaller image or a lower zoom."


class CropOutOfBoundsError(CropError):
    """Crop rectangle is not fully inside the composite."""
    user_message = "The crop area is outside the image. Adjust the crop and try again."


class EncodeError(CropError):
    """Raster could not be serialized into an upload artifact."""
    user_message = "The cropped image could not be saved. Please try again."
