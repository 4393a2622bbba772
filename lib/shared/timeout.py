import lib.shared.clock as clock


class Timeout:
    def __init__(self, clk : clock.Clock = None):
        self._clock = clk if clk != None else clock.SystemClock
        self._startS = 0
        self._endS = 0
        self._timeS = 0

    def Set(self, seconds):
        self._startS = self._clock.Time()
        self._timeS = seconds
        self._endS = self._startS + self._timeS

    def Finish(self):
        self._timeS = 0
        self._startS = 0
        self._endS = 0

    def IsArmed(self) -> bool:
        return self._endS != 0

    def IsSet(self):
        return (self.Left() > 0)

    def IsExpired(self) -> bool:
        return self.IsArmed() and not self.IsSet()

    def Consume(self) -> bool:
        """Returns True once after expiry and disarms, for one-shot polling from OnLoop."""
        if self.IsExpired():
            self.Finish()
            return True
        return False

    def Left(self):
        if self._endS == 0:
            return 0
        left = self._endS - self._clock.Time()
        if left < 0:
            left = 0
        return left

