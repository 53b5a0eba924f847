"""Gradient monitoring utilities.

Author: Oliver Perrin
Date: December 2025
"""

from typing import Dict, Mapping, Optional

import numpy as np

from ..models.module import Module


def find_non_finite(gradients: Mapping[str, np.ndarray]) -> Optional[str]:
    """Return the name of the first gradient holding NaN or Inf, if any."""
    for name, grad in gradients.items():
        if not np.all(np.isfinite(grad)):
            return name
    return None


def clip_grad_norm(gradients: Mapping[str, np.ndarray], max_norm: float) -> float:
    """Scale all gradients in place so their global L2 norm is at most ``max_norm``.

    Returns:
        The global norm before clipping.
    """
    total_norm = float(np.sqrt(sum(float(np.sum(g * g)) for g in gradients.values())))
    if total_norm > max_norm > 0:
        scale = max_norm / (total_norm + 1e-6)
        for grad in gradients.values():
            grad *= scale
    return total_norm


class GradientMonitor:
    """Monitor gradient statistics during training.
    
    Tracks gradient norms, helps detect gradient issues like vanishing/exploding.
    """
    
    def __init__(self, model: Module, log_frequency: int = 100):
        """Initialize gradient monitor.
        
        Args:
            model: Model to monitor
            log_frequency: Log gradients every N steps
        """
        self.model = model
        self.log_frequency = max(1, log_frequency)
        self.step_count = 0
        
    def compute_grad_norm(self) -> Dict[str, float]:
        """Compute gradient norm statistics.
        
        Returns:
            Dictionary with gradient statistics
        """
        total_norm = 0.0
        max_norm = 0.0
        num_params = 0
        
        for grad in self.model.gradient_set().values():
            param_norm = float(np.linalg.norm(grad))
            total_norm += param_norm ** 2
            max_norm = max(max_norm, param_norm)
            num_params += 1
        
        total_norm = total_norm ** 0.5
        
        return {
            "grad_norm": total_norm,
            "grad_norm_max": max_norm,
            "num_params_with_grad": num_params,
        }
    
    def check_gradients(self) -> Dict[str, int]:
        """Check for gradient issues (NaN, Inf, zero).
        
        Returns:
            Dictionary with counts of gradient issues
        """
        nan_count = 0
        inf_count = 0
        zero_count = 0
        
        for grad in self.model.gradient_set().values():
            if np.isnan(grad).any():
                nan_count += 1
            if np.isinf(grad).any():
                inf_count += 1
            if not grad.any():
                zero_count += 1
        
        return {
            "nan_grads": nan_count,
            "inf_grads": inf_count,
            "zero_grads": zero_count,
        }
    
    def log_gradients(self, step: Optional[int] = None) -> Optional[Dict[str, float]]:
        """Return gradient statistics if it's time to log them.
        
        Args:
            step: Current training step (uses internal counter if None)
            
        Returns:
            Gradient statistics if logged, None otherwise
        """
        if step is None:
            step = self.step_count
            self.step_count += 1
        
        if step % self.log_frequency == 0:
            stats = self.compute_grad_norm()
            issues = self.check_gradients()
            return {**stats, **issues}
        
        return None
