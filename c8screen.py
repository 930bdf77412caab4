from array import array


class C8Screen:
    '''
    Monochrome frame buffer.  vram holds what the program drew; back_buffer holds
    what the renderer last put on the window, so only changed pixels get redrawn.
    '''

    def __init__(self, xsize=64, ysize=32):
        self.xsize = xsize
        self.ysize = ysize
        self.vram = array('B', [0 for i in range(self.xsize * self.ysize)])
        self.back_buffer = array('B', [0 for i in range(self.xsize * self.ysize)])
        self.needs_draw = False
        self.clear()

    def reset(self):
        # Unlike clear(), also forgets what the renderer has drawn.
        self.clear()
        for i in range(self.xsize * self.ysize):
            self.back_buffer[i] = 0

    def clear(self):
        for i in range(self.xsize * self.ysize):
            self.vram[i] = 0
        self.needs_draw = True

    def getpx(self, x, y):
        return self.vram[(y * self.xsize) + x]

    def xor8px(self, x, y, val):
        assert 0 <= val <= 0xFF
        assert 0 <= x
        assert 0 <= y

        # xors the 8 cells from (x,y) to (x+7,y) with the bits in val.  Returns
        # True if any pixel was turned off.
        if y >= self.ysize or x >= self.xsize:
            return False

        vramcell = (y * self.xsize) + x

        # avoid wrapping
        numpx = min([8, self.xsize - x])

        collision = False

        for i in range(numpx):
            if (val << i) & 0x80:
                # 0 means do nothing, so only treat the 1 case
                if self.vram[vramcell] == 1:
                    collision = True
                    self.vram[vramcell] = 0
                else:
                    self.vram[vramcell] = 1
            vramcell += 1
        self.needs_draw = True
        return collision

    def changed_pixels(self):
        '''
        Yields (x, y, value) for each pixel that differs from the back buffer and
        brings the back buffer up to date.  Clears the dirty state.
        '''
        index = 0
        for y in range(self.ysize):
            for x in range(self.xsize):
                if self.vram[index] != self.back_buffer[index]:
                    self.back_buffer[index] = self.vram[index]
                    yield x, y, self.vram[index]
                index += 1
        self.needs_draw = False

    def __str__(self):
        lines = []
        for y in range(self.ysize):
            row = self.vram[y * self.xsize:(y + 1) * self.xsize]
            lines.append(''.join('#' if px else '.' for px in row))
        return '\n'.join(lines)
