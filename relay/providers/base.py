# contract for an open upstream run stream, so the transcoder
# can be driven by httpx in production and by plain fakes in tests

from typing import AsyncIterator, Protocol


class RunStream(Protocol):
    def aiter_text(self) -> AsyncIterator[str]:
        ...

    async def aclose(self) -> None:
        ...
