"""Exception types raised by OncoLite."""


class OncoLiteError(Exception):
    """Base class for all OncoLite errors."""


class ModelLoadError(OncoLiteError):
    """The model artifact could not be fetched or deserialized."""


class ModelNotReadyError(OncoLiteError):
    """Prediction was requested before the model finished loading."""


class PredictionError(OncoLiteError):
    """The model failed while running inference."""


class PredictionInProgressError(OncoLiteError):
    """A prediction is already running for this session."""


class NoImageError(OncoLiteError):
    """No image has been uploaded yet."""


class NoPredictionError(OncoLiteError):
    """A report was requested before any prediction finished."""


class ImageDecodeError(OncoLiteError, ValueError):
    """Uploaded content is not a decodable image."""


class LabelTableMismatchError(OncoLiteError, ValueError):
    """Score vector length differs from the class label table length."""


class ExportDisabledError(OncoLiteError):
    """Report export is switched off in the configuration."""


class MissingDemographicsError(OncoLiteError, ValueError):
    """One or more demographic fields were left empty."""

    message = "Please fill out all demographic fields."

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"{self.message} Missing: {', '.join(self.missing)}")
