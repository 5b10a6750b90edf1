"""Dataset transformation base classes and parameters."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Any

from pycmip5.core.dataset import CMIP5Dataset
from pycmip5.core.exceptions import PreconditionError

logger = logging.getLogger(__name__)

# -----------------
# Transform Params
# -----------------


@dataclass
class TransformParams:
    """Class for constructing transform parameters.

    Implementing classes must still use the ``@dataclass`` operator.
    """

    #: Emit informational progress messages at INFO level.
    #: Progress is always available at DEBUG level.
    verbose: bool = False

    def as_dict(self) -> dict[str, Any]:
        """Convert object to dictionary.

        We use this method instead of  `dataclasses.asdict`
        to use a shallow/unrecursive copy.
        This will return values as Any instead of dict.

        Returns
        -------
        dict[str, Any]
            Dictionary version of self.
        """
        return {(name := field.name): getattr(self, name) for field in fields(self)}


# ----------
# Transforms
# ----------


class Transform(ABC):
    """Base class for dataset transformations.

    Implementing classes must implement the :meth:`eval` method.

    Parameters
    ----------
    params : TransformParams | dict[str, Any] | None, optional
        Override default parameters with a dictionary or an instance of
        :attr:`default_params`.
    **params_kwargs : Any
        Override parameters with keyword arguments.
    """

    __slots__ = ("params",)

    #: Default parameter dataclass
    default_params: type[TransformParams] = TransformParams

    #: Instantiated parameters, in dictionary form
    params: dict[str, Any]

    def __init__(
        self, params: TransformParams | dict[str, Any] | None = None, **params_kwargs: Any
    ) -> None:
        self._load_params(params, **params_kwargs)

    def __repr__(self) -> str:
        params = getattr(self, "params", {})
        return f"{type(self).__name__} transform\n\t{self.long_name}\n\tParams: {params}\n"

    @property
    @abstractmethod
    def name(self) -> str:
        """Get transform name, recorded in provenance."""

    @property
    @abstractmethod
    def long_name(self) -> str:
        """Get long name descriptor."""

    def _load_params(
        self, params: TransformParams | dict[str, Any] | None = None, **params_kwargs: Any
    ) -> None:
        """Load parameters to :attr:`params`.

        Load order:

        1. If ``params`` is a :attr:`default_params` instance, use as is. Otherwise
           instantiate as :attr:`default_params`.
        2. ``params`` input dict
        3. ``params_kwargs`` override keys in params

        Parameters
        ----------
        params : dict[str, Any], optional
            Parameter dictionary or :attr:`default_params` instance.
            Defaults to {}
        **params_kwargs : Any
            Override keys in ``params`` with keyword arguments.

        Raises
        ------
        KeyError
            Unknown parameter passed into transform
        TypeError
            Parameters of the wrong dataclass passed into transform
        """
        if isinstance(params, self.default_params):
            base_params = params
            params = None
        elif isinstance(params, TransformParams):
            msg = f"Transform parameters must be of type {self.default_params.__name__} or dict"
            raise TypeError(msg)
        else:
            base_params = self.default_params()

        self.params = base_params.as_dict()
        self.update_params(params, **params_kwargs)

    def update_params(self, params: dict[str, Any] | None = None, **params_kwargs: Any) -> None:
        """Update parameters on :attr:`params`.

        Parameters
        ----------
        params : dict[str, Any], optional
            Parameters to update, as dictionary.
            Defaults to {}
        **params_kwargs : Any
            Override keys in ``params`` with keyword arguments.

        Raises
        ------
        PreconditionError
            If ``verbose`` is not a bool.
        """
        update_param_dict(self.params, params or {})
        update_param_dict(self.params, params_kwargs)

        if not isinstance(self.params["verbose"], bool):
            msg = f"Parameter 'verbose' must be a bool, got {type(self.params['verbose']).__name__}"
            raise PreconditionError(msg)

    @abstractmethod
    def eval(self, *args: Any, **params: Any) -> CMIP5Dataset:
        """Abstract method to handle evaluation.

        Parameters
        ----------
        *args : Any
            Datasets and arguments defined by the implementing class.
        **params : Any
            Overwrite parameters before evaluation.

        Returns
        -------
        CMIP5Dataset
            New dataset. Inputs are never modified.
        """

    def _progress(self, msg: str, *args: Any) -> None:
        """Log a progress message at INFO when ``verbose`` and at DEBUG otherwise."""
        level = logging.INFO if self.params["verbose"] else logging.DEBUG
        logging.getLogger(type(self).__module__).log(level, msg, *args)


def require_dataset(obj: Any, name: str) -> CMIP5Dataset:
    """Ensure ``obj`` is a :class:`CMIP5Dataset`.

    Parameters
    ----------
    obj : Any
        Object to check
    name : str
        Argument name used in the error message

    Returns
    -------
    CMIP5Dataset
        ``obj``

    Raises
    ------
    PreconditionError
        If ``obj`` is not a :class:`CMIP5Dataset`.
    """
    if not isinstance(obj, CMIP5Dataset):
        msg = f"Input '{name}' must be a CMIP5Dataset, got {type(obj).__name__}."
        raise PreconditionError(msg)
    return obj


def update_param_dict(param_dict: dict[str, Any], new_params: dict[str, Any]) -> None:
    """Update parameter dictionary in place.

    Parameters
    ----------
    param_dict : dict[str, Any]
        Active parameter dictionary
    new_params : dict[str, Any]
        Parameters to update, as a dictionary

    Raises
    ------
    KeyError
        Raises when ``new_params`` key is not found in ``param_dict``

    """
    for param, value in new_params.items():
        if param not in param_dict:
            msg = (
                f"Unknown parameter '{param}' passed into transform. Possible "
                f"parameters include {', '.join(param_dict)}."
            )
            raise KeyError(msg)

        param_dict[param] = value
