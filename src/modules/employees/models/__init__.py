from .employee import Employee

__all__ = ['Employee']
