from tickpulse.application.use_cases.process_tick_usecase import ProcessTickUseCase

__all__ = ["ProcessTickUseCase"]
